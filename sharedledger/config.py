
import os
import re
from pathlib import Path

from dotenv import load_dotenv
from flask import current_app, has_app_context


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical.
load_dotenv(_PROJECT_ROOT / ".env")

_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _default_currency() -> str:
    """
    Resolves the ledger's default currency code.

    Preferred var:
      LEDGER_DEFAULT_CURRENCY

    Backward-compatible alias:
      DEFAULT_CURRENCY
    """
    raw = _first_non_empty_env(
        "LEDGER_DEFAULT_CURRENCY",
        "DEFAULT_CURRENCY",
        default="USD",
    )
    return raw.strip().upper()


class BaseConfig:

    # Currency used by calculate_balance() and suggest_settlements() when the
    # caller does not name one. Never used to convert between currencies.
    DEFAULT_CURRENCY: str = _default_currency()

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO").upper()

    JSON_SORT_KEYS: bool = False


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG").upper()


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # Tests assert on USD amounts regardless of the developer's .env.
    DEFAULT_CURRENCY: str = "USD"


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="WARNING").upper()


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Called in the app factory immediately after
    app.config.from_object(ProductionConfig).

    Raises ValueError if the default currency is not a three-letter ISO-4217
    code. A bad value here would otherwise surface as a 422 on every request
    that relies on the default.
    """
    currency = app.config.get("DEFAULT_CURRENCY") or ""
    if not _CURRENCY_CODE_RE.match(currency):
        raise ValueError(
            f"LEDGER_DEFAULT_CURRENCY must be a three-letter ISO-4217 code, "
            f"got {currency!r}."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from sharedledger.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Convenience alias: resolves the active config class from FLASK_ENV.
# Defaults to development if the variable is not set. Used for
# DEFAULT_CURRENCY when services are called outside a Flask app.
ActiveConfig: type[BaseConfig] = config_by_name.get(
    os.getenv("FLASK_ENV", "development"),
    DevelopmentConfig,
)


def default_currency() -> str:
    """
    Returns the default currency code.

    Inside a request the running app's config wins; plain library calls fall
    back to ActiveConfig.
    """
    if has_app_context():
        return current_app.config["DEFAULT_CURRENCY"]
    return ActiveConfig.DEFAULT_CURRENCY
