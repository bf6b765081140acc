"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Inspect the raw configuration for settings that are valid but suspicious.

    Returns:
        List of warning messages
    """
    warning_messages = []

    notifications = config_dict.get("notifications", {})
    if isinstance(notifications, dict) and notifications.get("enabled") is False:
        warning_messages.append(
            "Notifications are disabled; matches will be stored but nobody is told"
        )

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        min_score = matching.get("notify_min_score")
        if isinstance(min_score, int) and min_score < 10:
            warning_messages.append(
                f"Very low notify_min_score ({min_score}) will notify on weak matches"
            )

    scoring = config_dict.get("scoring", {})
    if isinstance(scoring, dict):
        endpoint = scoring.get("endpoint_url")
        if isinstance(endpoint, str) and endpoint.strip().startswith("http://"):
            warning_messages.append(
                "scoring.endpoint_url uses plain HTTP; candidate data is sent unencrypted"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message through Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
