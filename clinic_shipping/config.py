"""
Configuration management for the Clinic Shipping Agent.
Handles loading settings from environment variables and config files.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv


DEFAULT_DANE_FILE = Path(__file__).parent / "data" / "dane_codes.tsv"


@dataclass
class ShippingConfig:
    """Main configuration class for the shipping agent."""

    # === Envioclick ===
    envioclick_api_key: str = ""
    envioclick_api_url: str = "https://api.envioclickpro.com.co/api/v2"
    envioclick_sandbox: bool = False  # True = /shipment_sandbox
    request_timeout: float = 10.0  # seconds, per outbound call

    # === Origin (clinic) contact block ===
    origin_company: str = "Rostro Dorado Clinic"
    origin_first_name: str = "Rostro"
    origin_last_name: str = "Dorado"
    origin_email: str = "contacto@rostrodorado.com"
    origin_phone: str = "3000000000"
    origin_address: str = "Calle 12 #12-03 local 2"
    origin_suburb: str = "Centro"
    origin_cross_street: str = "Calle 12"
    origin_reference: str = "Local 2"
    origin_dane_code: str = "44001000"  # Riohacha
    origin_state_code: str = "44"

    # === Package defaults ===
    # Placeholder dimensions (cm); not derived from item geometry
    package_height: float = 10
    package_width: float = 10
    package_length: float = 10
    content_description: str = "Productos de Belleza"
    min_content_value: float = 20000  # COP, used when order total <= 0
    default_phone: str = "3000000000"
    max_address_length: int = 40

    # === Data files ===
    dane_codes_file: Path = field(default_factory=lambda: DEFAULT_DANE_FILE)
    order_store_file: Path = field(default_factory=lambda: Path("data") / "orders.json")

    # === Scheduling ===
    sync_enabled: bool = True
    sync_interval_hours: float = 2
    sync_concurrency: int = 5

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/shipping.log"

    # Monitoring
    sentry_dsn: Optional[str] = None

    @property
    def origin_contact(self) -> dict:
        """Origin block in the shape the shipment endpoint expects."""
        return {
            "company": self.origin_company,
            "firstName": self.origin_first_name,
            "lastName": self.origin_last_name,
            "email": self.origin_email,
            "phone": self.origin_phone,
            "address": self.origin_address,
            "suburb": self.origin_suburb,
            "crossStreet": self.origin_cross_street,
            "reference": self.origin_reference,
            "daneCode": self.origin_dane_code,
        }

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ShippingConfig":
        """Load configuration from environment variables."""

        # Try to load from .env file
        if env_file:
            load_dotenv(env_file)
        else:
            # Try common locations
            for env_path in ["config.env", ".env", "../config.env"]:
                if Path(env_path).exists():
                    load_dotenv(env_path)
                    break

        defaults = cls()

        return cls(
            # Envioclick
            envioclick_api_key=os.getenv("ENVIOCLICK_API_KEY", ""),
            envioclick_api_url=os.getenv("ENVIOCLICK_API_URL", defaults.envioclick_api_url),
            envioclick_sandbox=os.getenv("ENVIOCLICK_SANDBOX", "false").lower() in ("true", "1", "yes"),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),

            # Origin
            origin_company=os.getenv("ORIGIN_COMPANY", defaults.origin_company),
            origin_first_name=os.getenv("ORIGIN_FIRST_NAME", defaults.origin_first_name),
            origin_last_name=os.getenv("ORIGIN_LAST_NAME", defaults.origin_last_name),
            origin_email=os.getenv("ORIGIN_EMAIL", defaults.origin_email),
            origin_phone=os.getenv("ORIGIN_PHONE", defaults.origin_phone),
            origin_address=os.getenv("ORIGIN_ADDRESS", defaults.origin_address),
            origin_suburb=os.getenv("ORIGIN_SUBURB", defaults.origin_suburb),
            origin_cross_street=os.getenv("ORIGIN_CROSS_STREET", defaults.origin_cross_street),
            origin_reference=os.getenv("ORIGIN_REFERENCE", defaults.origin_reference),
            origin_dane_code=os.getenv("ORIGIN_DANE_CODE", defaults.origin_dane_code),
            origin_state_code=os.getenv("ORIGIN_STATE_CODE", defaults.origin_state_code),

            # Package
            package_height=float(os.getenv("PACKAGE_HEIGHT", "10")),
            package_width=float(os.getenv("PACKAGE_WIDTH", "10")),
            package_length=float(os.getenv("PACKAGE_LENGTH", "10")),
            content_description=os.getenv("CONTENT_DESCRIPTION", defaults.content_description),
            min_content_value=float(os.getenv("MIN_CONTENT_VALUE", "20000")),
            default_phone=os.getenv("DEFAULT_PHONE", defaults.default_phone),
            max_address_length=int(os.getenv("MAX_ADDRESS_LENGTH", "40")),

            # Data files
            dane_codes_file=Path(os.getenv("DANE_CODES_FILE", str(DEFAULT_DANE_FILE))),
            order_store_file=Path(os.getenv("ORDER_STORE_FILE", str(defaults.order_store_file))),

            # Scheduling
            sync_enabled=os.getenv("SYNC_ENABLED", "true").lower() == "true",
            sync_interval_hours=float(os.getenv("SYNC_INTERVAL_HOURS", "2")),
            sync_concurrency=int(os.getenv("SYNC_CONCURRENCY", "5")),

            # Logging
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", defaults.log_file),

            # Monitoring
            sentry_dsn=os.getenv("SENTRY_DSN"),
        )

    def ensure_directories(self):
        """Create necessary directories if they don't exist."""
        self.order_store_file.parent.mkdir(parents=True, exist_ok=True)
        Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not self.envioclick_api_key:
            errors.append("ENVIOCLICK_API_KEY is required")
        if not self.dane_codes_file.exists():
            errors.append(f"DANE codes file not found: {self.dane_codes_file}")
        if self.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be positive")
        if self.sync_concurrency < 1:
            errors.append("SYNC_CONCURRENCY must be at least 1")
        if len(self.origin_dane_code) != 8:
            errors.append("ORIGIN_DANE_CODE must have 8 digits")

        return errors


# Global config instance
_config: Optional[ShippingConfig] = None


def get_config() -> ShippingConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ShippingConfig.from_env()
    return _config


def init_config(env_file: Optional[str] = None) -> ShippingConfig:
    """Initialize configuration from environment."""
    global _config
    _config = ShippingConfig.from_env(env_file)
    _config.ensure_directories()
    return _config
