import re
from contextvars import ContextVar
from typing import Any, Dict, Optional

MASK = "***MASKED***"

# Set by the request logging middleware for the lifetime of one request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_SECRET_TERMS = ("password", "secret", "token", "authorization", "bearer", "jwt")
_CODE_KEYS = ("link_code", "linkcode", "code")

# Public routes that carry a link code as their last path segment
_LINK_CODE_PATH = re.compile(r"(/submissions/(?:submit|form)/)([^/?#]+)")


def mask_email(value: str) -> str:
    """Keep the first three characters of the local part and the domain."""
    if "@" not in value:
        return MASK
    local, _, domain = value.partition("@")
    if len(local) <= 3:
        return MASK
    return f"{local[:3]}***@{domain}"


def mask_link_code(value: str) -> str:
    """Link codes grant anonymous access; only a short prefix is logged."""
    if len(value) <= 6:
        return MASK
    return f"{value[:6]}..."


def mask_path(path: str) -> str:
    """Truncate the link code in public form and submit URLs."""
    return _LINK_CODE_PATH.sub(lambda m: m.group(1) + mask_link_code(m.group(2)), path)


def mask_sensitive_data(data: Any, mask_string: str = MASK) -> Any:
    """
    Recursively mask sensitive data in dictionaries, lists, and strings.

    Args:
        data: Data structure to mask (dict, list, str, or other)
        mask_string: String to use for masking

    Returns:
        Masked data structure
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()

            if key_lower in ("requestid", "request_id"):
                masked[key] = value
            elif any(term in key_lower for term in _SECRET_TERMS):
                masked[key] = mask_string
            elif "email" in key_lower and isinstance(value, str):
                masked[key] = mask_email(value)
            elif key_lower in _CODE_KEYS and isinstance(value, str):
                masked[key] = mask_link_code(value)
            elif key_lower in ("path", "url") and isinstance(value, str):
                masked[key] = mask_path(value)
            else:
                masked[key] = mask_sensitive_data(value, mask_string)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item, mask_string) for item in data]

    if isinstance(data, str):
        # Looks like a JWT
        if data.startswith("eyJ") and data.count(".") == 2:
            return mask_string
        return data

    return data


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """
    Mask sensitive HTTP headers.

    Args:
        headers: Dictionary of HTTP headers

    Returns:
        Dictionary with sensitive headers masked
    """
    sensitive_headers = ("authorization", "cookie", "set-cookie", "x-auth-token")
    return {
        key: MASK if key.lower() in sensitive_headers else value
        for key, value in headers.items()
    }


def get_request_id() -> Optional[str]:
    """Request ID of the request being handled, if any."""
    return request_id_var.get()


def sanitize_log_message(message: str, **kwargs: Any) -> str:
    """
    Append masked key/value context to a log message.

    Example:
        sanitize_log_message("Link created", LinkID=link.id, Email=email)
        -> "Link created | LinkID: 3f2c... | Email: ali***@example.com"
    """
    if not kwargs:
        return message

    # Keys are matched case-insensitively, so "Email" is masked like "email"
    masked_kwargs = mask_sensitive_data(kwargs)

    context_parts = []
    for key, value in masked_kwargs.items():
        if isinstance(value, (dict, list)):
            value = str(value)[:200]
        context_parts.append(f"{key}: {value}")

    return f"{message} | {' | '.join(context_parts)}"
