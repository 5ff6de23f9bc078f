"""Main entry point for the process warden."""

import sys
from typing import Optional

import click
import structlog
from pydantic import ValidationError

from warden_runtime import __version__
from warden_runtime.core.config import FRAMINGS, LOG_FORMATS, LOG_LEVELS, Settings
from warden_runtime.core.exceptions import ChannelError, ConfigurationError, SpawnError, UnknownHandleError
from warden_runtime.utils.logging import setup_logging, truncate_output
from warden_supervisor.channel import AnnouncementChannel, make_framer
from warden_supervisor.process_manager import ProcessManager
from warden_supervisor.supervisor import Supervisor, install_signal_handlers

logger = structlog.get_logger()


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, with explicit values taking precedence."""
    try:
        return Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise ConfigurationError(str(e), code="invalid_settings") from e


def serve(settings: Settings) -> int:
    """Run a supervisor until it is terminated. Returns the exit status."""
    install_signal_handlers()

    try:
        truncate_output(settings.worker_output)
        truncate_output(settings.supervisor_output)
    except OSError as e:
        setup_logging(None, settings.log_level, settings.log_format)
        logger.error("Cannot prepare output files", error=str(e))
        return 1
    setup_logging(settings.supervisor_output, settings.log_level, settings.log_format)

    logger.debug("Starting process warden", version=__version__, channel=settings.channel_path)

    try:
        channel = AnnouncementChannel.open(
            settings.channel_path,
            make_framer(settings.channel_framing, settings.frame_width),
        )
    except ChannelError as e:
        logger.error("Cannot open announcement channel", error=str(e))
        return 1

    process_manager = ProcessManager(
        worker_output=settings.worker_output,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )
    supervisor = Supervisor(
        pool_size=settings.pool_size,
        process_manager=process_manager,
        channel=channel,
        privileged_index=settings.privileged_index,
        spawn_delay=settings.spawn_delay,
    )

    try:
        supervisor.start()
        supervisor.run()
    except SpawnError as e:
        logger.error("Failed to start worker pool", worker=e.index, error=str(e))
        return 1
    except UnknownHandleError:
        logger.exception("Worker registry is corrupted, aborting")
        return 1
    except ChannelError as e:
        logger.error("Announcement channel failed", error=str(e))
        return 1
    finally:
        channel.close()
    return 0


@click.command()
@click.argument("pool_size", type=int, required=False)
@click.argument("worker_output", required=False)
@click.argument("supervisor_output", required=False)
@click.option("--channel", "channel_path", default=None, help="Named pipe to announce workers on")
@click.option("--framing", "channel_framing", type=click.Choice(FRAMINGS), default=None, help="Record framing")
@click.option("--frame-width", type=int, default=None, help="Record size for fixed framing")
@click.option("--spawn-delay", type=float, default=None, help="Pause between initial spawns (seconds)")
@click.option("--privileged-index", type=int, default=None, help="Worker whose death restarts the pool")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None, help="Log level")
@click.option("--log-format", type=click.Choice(LOG_FORMATS), default=None, help="Log format")
@click.version_option(__version__)
def run(**options: Optional[object]):
    """Supervise POOL_SIZE workers logging to WORKER_OUTPUT."""
    try:
        settings = load_settings(**options)
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e
    sys.exit(serve(settings))


if __name__ == "__main__":
    run()
