"""Entry point for ``python -m warden_runtime``."""

from warden_runtime.main import run

if __name__ == "__main__":
    run()
