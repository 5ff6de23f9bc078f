"""Entry point for ``python -m warden_worker``."""

from warden_worker.worker import main

if __name__ == "__main__":
    main()
