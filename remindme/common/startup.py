"""Startup-time summary of the effective settings, with secrets masked."""

from remindme.common.config import CommonSettings
from remindme.common.logging import logger

SECRET_MARKERS = ("api_key", "secret", "password", "token")


def _redact(name: str, value: object) -> object:
    if value is None:
        return "<unset>"
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    if isinstance(value, str) and "://" in value and "@" in value:
        # credentials embedded in a connection URL
        scheme, rest = value.split("://", 1)
        return f"{scheme}://<redacted>@{rest.rsplit('@', 1)[1]}"
    return value


def startup_config(config: CommonSettings, fields: list[str] | None = None) -> dict[str, object]:
    """Return the named settings (all of them by default) ready for logging."""

    names = fields or list(type(config).model_fields)
    summary: dict[str, object] = {"service": config.service_name}
    for name in names:
        summary[name] = _redact(name, getattr(config, name))
    return summary


def log_startup_config(config: CommonSettings, fields: list[str] | None = None) -> None:
    logger.info("startup_config=%s", startup_config(config, fields))
