import os
import json
from functools import lru_cache
from pydantic import ValidationError
from utils.models.settings_model import Settings
from utils.exceptions import ConfigurationError
from utils.logging import logger

CONFIG_DIR = os.path.dirname(__file__)
SETTINGS_FILE = os.getenv('SETTINGS_FILE', os.path.join(CONFIG_DIR, 'settings.json'))

_logger = logger.bind(module='ConfigLoader')


def load_settings(path: str) -> Settings:
    """Read and validate a settings file, raising ConfigurationError on any problem."""
    _logger.info(f"📖 Loading settings from: {path}")
    if not os.path.exists(path):
        _logger.error(f"❌ Settings file not found at {path}")
        raise ConfigurationError(f"Settings file not found at {path}. Ensure the entrypoint script has run.")
    try:
        with open(path, 'r') as f:
            settings_dict = json.load(f)
        settings = Settings(**settings_dict)
    except json.JSONDecodeError as e:
        _logger.error(f"❌ Error decoding settings file: {e}")
        raise ConfigurationError(f"Error decoding settings file ({path}): {str(e)}") from e
    except ValidationError as e:
        _logger.error(f"❌ Invalid settings: {e}")
        raise ConfigurationError(f"Invalid settings in {path}: {str(e)}") from e
    except OSError as e:
        _logger.error(f"❌ Error reading settings: {e}")
        raise ConfigurationError(f"Error reading settings from {path}: {str(e)}") from e

    _logger.success(
        f"✅ Loaded settings for namespace '{settings.namespace}' "
        f"(chain {settings.chain_id}, factory {settings.contracts.factory_address})"
    )
    return settings


@lru_cache()
def get_core_config() -> Settings:
    """Load settings from the settings.json file."""
    return load_settings(SETTINGS_FILE)
