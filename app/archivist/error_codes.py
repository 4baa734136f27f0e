from __future__ import annotations

"""Error statistic buckets for scraper failures.

These codes key the run's error counters, appear in structured logs and in
the final summary so a run can explain where its skips came from.
"""


class ErrorCode:
    SCRAPE = "scrape_error"
    WRITE = "write_error"
    PROCESS = "process_error"
    NETWORK = "network_error"
    OTHER = "other_error"

    ALL = (SCRAPE, WRITE, PROCESS, NETWORK, OTHER)


__all__ = ["ErrorCode"]
