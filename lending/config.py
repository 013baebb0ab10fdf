import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Storage
    data_dir: str = os.getenv("LIBRARY_DATA_DIR", "data")

    # Logging
    log_level: str = os.getenv("LIBRARY_LOG_LEVEL", "WARNING").upper()

    # CLI
    output_mode: str = os.getenv("LIB_CLI_OUTPUT", "plain").lower()

    # Application
    app_name: str = os.getenv("APP_NAME", "Library Lending")
    debug: bool = _flag("DEBUG")


settings = Settings()
