from __future__ import annotations

import logging
from dataclasses import replace
from typing import Literal

from .config import DEFAULT_LETTERS, WRITE_TARGETS, ScraperConfig
from .logging_utils import _scraper_event
from .utils import log_line

Entrypoint = Literal["cli", "listings", "analysis", "healthcheck", "tests"]


def _raise_config_error(
    message: str, *, entrypoint: Entrypoint, error: str, write_to: str | None
) -> None:
    _scraper_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
        write_to=write_to,
        level=logging.ERROR,
    )
    target_fragment = f", write_to={write_to}" if write_to else ""
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint}{target_fragment})")
    raise ValueError(message)


def validate_runtime_config(cfg: ScraperConfig, entrypoint: Entrypoint) -> ScraperConfig:
    """Validate ``cfg`` for the given entrypoint and return the config to use.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Non-fatal adjustments (e.g., clamping the log tail length) are logged and
    applied to the returned copy.
    """

    write_to = cfg.write_to

    if cfg.write_to not in WRITE_TARGETS:
        _raise_config_error(
            f"WRITE_TO must be one of {', '.join(WRITE_TARGETS)}; got {cfg.write_to!r}.",
            entrypoint=entrypoint,
            error="invalid_write_target",
            write_to=write_to,
        )

    if cfg.batch_size < 1:
        _raise_config_error(
            "BATCH_SIZE must be greater than zero.",
            entrypoint=entrypoint,
            error="invalid_batch_size",
            write_to=write_to,
        )

    if cfg.max_batches < 0:
        _raise_config_error(
            "MAX_BATCHES must be non-negative (0 means unlimited).",
            entrypoint=entrypoint,
            error="invalid_max_batches",
            write_to=write_to,
        )

    if cfg.rate_limit_delay < 0:
        _raise_config_error(
            "RATE_LIMIT_DELAY must be non-negative.",
            entrypoint=entrypoint,
            error="invalid_rate_limit_delay",
            write_to=write_to,
        )

    unknown_letters = sorted(set(cfg.letters) - set(DEFAULT_LETTERS))
    if not cfg.letters or unknown_letters:
        _raise_config_error(
            f"LETTERS must be a non-empty subset of {DEFAULT_LETTERS}; unknown: {''.join(unknown_letters)}",
            entrypoint=entrypoint,
            error="invalid_letters",
            write_to=write_to,
        )

    if not cfg.base_url.startswith(("http://", "https://")):
        _raise_config_error(
            f"BASE_URL must be an http(s) URL; got {cfg.base_url!r}.",
            entrypoint=entrypoint,
            error="invalid_base_url",
            write_to=write_to,
        )

    timeout_fields = [
        ("PAGE_TIMEOUT_SECONDS", cfg.page_timeout_seconds),
        ("ELEMENT_TIMEOUT_SECONDS", cfg.element_timeout_seconds),
        ("HTTP_TIMEOUT_SECONDS", cfg.http_timeout_seconds),
    ]

    for field_name, value in timeout_fields:
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_timeout",
                write_to=write_to,
            )

    if cfg.tail_length < 0:
        _raise_config_error(
            "TAIL_LENGTH must be non-negative.",
            entrypoint=entrypoint,
            error="invalid_tail_length",
            write_to=write_to,
        )

    if cfg.tail_length == 0:
        adjusted = 1
        _scraper_event(
            "state",
            phase="config",
            context="runtime_validation",
            kind="config_adjustment",
            field="TAIL_LENGTH",
            value=cfg.tail_length,
            adjusted=adjusted,
            entrypoint=entrypoint,
        )
        log_line("[CONFIG] TAIL_LENGTH is 0; clamping to 1 so the dashboard shows the last log line.")
        cfg = replace(cfg, tail_length=adjusted)

    return cfg


__all__ = ["validate_runtime_config", "Entrypoint"]
