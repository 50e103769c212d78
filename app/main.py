import signal
import sys
from enum import IntEnum

from dotenv import load_dotenv
from pydantic import ValidationError
from pydantic_settings import SettingsError

load_dotenv()

from infrastructure.logging import get_module_logger  # noqa: E402
from infrastructure.persistence import StoreUnavailable  # noqa: E402
from infrastructure.services import get_settings  # noqa: E402
from modules.dispatch import DispatchService  # noqa: E402
from modules.dispatch.errors import ConfigurationError  # noqa: E402

logger = get_module_logger()


class ExitCode(IntEnum):
    OK = 0
    UNEXPECTED_ERROR = 1
    STORE_UNAVAILABLE = 74
    INVALID_CONFIGURATION = 78


def main() -> ExitCode:
    """Run the dispatch pipeline until SIGTERM/SIGINT or a fatal store error."""
    logger.info("application_startup")

    try:
        settings = get_settings()
        list_configs(settings)
        service = DispatchService.from_settings(settings)
    except (ValidationError, SettingsError, ConfigurationError) as e:
        logger.critical("invalid_configuration", error=str(e))
        return ExitCode.INVALID_CONFIGURATION
    except StoreUnavailable as e:
        logger.critical("store_unavailable", error=str(e))
        return ExitCode.STORE_UNAVAILABLE
    except Exception as e:  # noqa: BLE001
        logger.critical("application_startup_failed", error=str(e), exc_info=True)
        return ExitCode.UNEXPECTED_ERROR

    def handle_signal(signum, _frame):
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        service.request_shutdown()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    try:
        service.start()
        service.wait()
    except StoreUnavailable as e:
        logger.critical("store_unavailable", error=str(e), exc_info=True)
        service.stop()
        return ExitCode.STORE_UNAVAILABLE
    except Exception as e:  # noqa: BLE001
        logger.critical("application_error", error=str(e), exc_info=True)
        service.stop()
        return ExitCode.UNEXPECTED_ERROR

    service.stop()
    if service.fatal_error is not None:
        return ExitCode.STORE_UNAVAILABLE
    logger.info("application_shutdown")
    return ExitCode.OK


def list_configs(settings):
    """List all configuration settings keys"""
    config_settings = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
