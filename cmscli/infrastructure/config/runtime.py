"""Per-invocation runtime context.

Resolves every setting once, with precedence option > environment > YAML >
default, and validates ranges and base-URL overrides. Nothing below the
composition root reads the environment; services get these values through
their constructors.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import urlsplit

from cmscli.domain.models.common import OutputMode
from cmscli.domain.models.errors import invalid_input
from cmscli.domain.models.pagination import DEFAULT_MAX_ITEMS
from cmscli.infrastructure.api.content_client import CONTENT_DOMAIN, MANAGEMENT_DOMAIN
from cmscli.infrastructure.config.settings import (
    env_name,
    get_api_key,
    get_config,
    get_mock_store_file,
    get_service_domain,
)

logger = logging.getLogger(__name__)

TIMEOUT_RANGE = (1, 120_000)
RETRY_RANGE = (0, 10)
RETRY_MAX_DELAY_RANGE = (100, 120_000)
OUTPUT_MODES = ("inspect", "plain", "table")
LOCAL_HOSTS = ("localhost", "127.0.0.1")


@dataclass
class RuntimeContext:
    """Resolved settings for one CLI invocation."""
    service_domain: Optional[str] = None
    api_key: Optional[str] = None
    timeout_ms: int = 10_000
    retry: int = 2
    retry_max_delay_ms: int = 3_000
    json_output: bool = False
    verbose: bool = False
    output_mode: OutputMode = "inspect"
    select_fields: Optional[List[str]] = None
    content_all_max_items: int = DEFAULT_MAX_ITEMS
    content_base_url: Optional[str] = None
    management_base_url: Optional[str] = None
    mock_store_file: Optional[str] = None


def parse_int_option(name: str, value: Any, minimum: int, maximum: int) -> Optional[int]:
    """Parses an integer setting and checks its range. ``None`` passes through."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise invalid_input(f"{name} must be an integer between {minimum} and {maximum}")
    try:
        parsed = int(str(value).strip())
    except ValueError as e:
        raise invalid_input(f"{name} must be an integer between {minimum} and {maximum}", {"value": value}) from e
    if parsed < minimum or parsed > maximum:
        raise invalid_input(f"{name} must be an integer between {minimum} and {maximum}", {"value": parsed})
    return parsed


def normalize_base_url_override(name: str, value: str, allowed_domains: List[str]) -> str:
    """Validates a base-URL override and returns its origin.

    The URL must be absolute, carry no credentials, use https unless it
    points at localhost, and its host must be an allowed domain or a
    sub-domain of one.
    """
    try:
        parsed = urlsplit(value.strip())
        hostname = parsed.hostname
        parsed.port  # raises on an invalid port
    except ValueError as e:
        raise invalid_input(f"{name} must be a valid URL") from e
    if not parsed.scheme or not hostname:
        raise invalid_input(f"{name} must be a valid URL")

    if parsed.username or parsed.password:
        raise invalid_input(f"{name} must not include username/password")

    is_local = hostname in LOCAL_HOSTS
    if not is_local and parsed.scheme != "https":
        raise invalid_input(f"{name} must use https for non-localhost origins")

    allowed = is_local or any(hostname == domain or hostname.endswith(f".{domain}") for domain in allowed_domains)
    if not allowed:
        raise invalid_input(f"{name} points to a non-allowed host", {"hostname": hostname})

    return f"{parsed.scheme}://{parsed.netloc.lower()}"


def build_runtime_context(
    service_domain: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout_ms: Optional[Any] = None,
    retry: Optional[Any] = None,
    retry_max_delay_ms: Optional[Any] = None,
    json_output: bool = False,
    verbose: bool = False,
    output_mode: Optional[str] = None,
    select: Optional[str] = None,
) -> RuntimeContext:
    """Builds the RuntimeContext from CLI options and loaded configuration."""
    mode = output_mode or get_config("output", "inspect")
    if mode not in OUTPUT_MODES:
        raise invalid_input(f"--output must be one of: {', '.join(OUTPUT_MODES)}", {"value": mode})

    select_fields = [field.strip() for field in select.split(",") if field.strip()] if select else None

    context = RuntimeContext(
        service_domain=service_domain or get_service_domain(),
        api_key=api_key or get_api_key(),
        timeout_ms=_ranged("--timeout", timeout_ms, "timeout_ms", TIMEOUT_RANGE, 10_000),
        retry=_ranged("--retry", retry, "retry", RETRY_RANGE, 2),
        retry_max_delay_ms=_ranged(
            "--retry-max-delay", retry_max_delay_ms, "retry_max_delay_ms", RETRY_MAX_DELAY_RANGE, 3_000
        ),
        json_output=json_output,
        verbose=verbose,
        output_mode=mode,
        select_fields=select_fields or None,
        content_all_max_items=_ranged(
            env_name("content_all_max_items"), None, "content_all_max_items", (1, 10_000_000), DEFAULT_MAX_ITEMS
        ),
        mock_store_file=get_mock_store_file(),
    )

    content_override = get_config("content_api_base_url")
    if content_override:
        context.content_base_url = normalize_base_url_override(
            env_name("content_api_base_url"), str(content_override), [CONTENT_DOMAIN]
        )
    management_override = get_config("management_api_base_url")
    if management_override:
        context.management_base_url = normalize_base_url_override(
            env_name("management_api_base_url"), str(management_override), [MANAGEMENT_DOMAIN]
        )

    logger.debug(
        f"Runtime context: domain={context.service_domain}, timeout={context.timeout_ms}ms, "
        f"retry={context.retry}, retry_max_delay={context.retry_max_delay_ms}ms, "
        f"mock_store={context.mock_store_file}"
    )
    return context


def _ranged(name: str, option_value: Any, config_key: str, bounds: tuple, default: int) -> int:
    value = option_value if option_value is not None else get_config(config_key)
    parsed = parse_int_option(name, value, bounds[0], bounds[1])
    return default if parsed is None else parsed
