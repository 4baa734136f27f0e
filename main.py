from app.archivist.run import _cli_entrypoint

if __name__ == "__main__":
    # Flags and environment variables are documented in app/archivist/config.py.
    raise SystemExit(_cli_entrypoint())
