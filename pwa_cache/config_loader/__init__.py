from .config_loader import ConfigLoader, load_config
