"""
Configuration and secrets management for the Provider Finder app.

All settings come from Streamlit's secrets management with sensible
fallbacks, so the app and the test-suite run without a secrets file.

Usage:
    from src.utils.config import get_api_config, get_search_config

    directory_config = get_api_config('directory')
    base_url = directory_config.get('base_url')

    max_age = get_search_config()['state_max_age_hours']

Example `.streamlit/secrets.toml`:

    [directory]
    base_url = "https://ayurvedanearme.ae"
    request_timeout = 10

    [geocoding]
    provider = "directory"   # or "nominatim"

    [search]
    state_max_age_hours = 24
"""

import logging
from typing import Any, Dict

import streamlit as st

logger = logging.getLogger(__name__)

VALID_GEOCODING_PROVIDERS = ("directory", "nominatim")
VALID_PROVIDER_KINDS = ("doctor", "clinic")


def get_secret(key_path: str, default: Any = None) -> Any:
    """
    Safely retrieve a secret from Streamlit's secrets management.

    Args:
        key_path: Dot-notation path to the secret (e.g., 'directory.base_url')
        default: Default value if secret is not found

    Returns:
        The secret value or default if not found
    """
    try:
        keys = key_path.split(".")
        value = st.secrets

        for key in keys:
            try:
                value = value[key]
            except Exception:
                return default

        return value
    except Exception as e:
        logger.warning(f"Failed to retrieve secret '{key_path}': {e}")
        return default


def get_api_config(api_name: str) -> Dict[str, Any]:
    """
    Get configuration for a specific external service.

    Args:
        api_name: Name of the service ('directory' or 'geocoding')

    Returns:
        Dictionary containing the service configuration
    """
    if api_name == "directory":
        return {
            "base_url": get_secret("directory.base_url", "http://localhost:3000"),
            "request_timeout": get_secret("directory.request_timeout", 10),
        }
    elif api_name == "geocoding":
        return {
            "provider": get_secret("geocoding.provider", "directory"),
            "nominatim_user_agent": get_secret("geocoding.nominatim_user_agent", "provider_finder"),
            "request_timeout": get_secret("geocoding.request_timeout", 10),
            "rate_limit_delay": get_secret("geocoding.rate_limit_delay", 1.0),
            "max_retries": get_secret("geocoding.max_retries", 3),
        }
    else:
        return {}


def get_app_config() -> Dict[str, Any]:
    """General application configuration."""
    return {
        "environment": get_secret("app.environment", "production"),
        "debug_mode": get_secret("app.debug_mode", False),
        "log_level": get_secret("app.log_level", "INFO"),
    }


def get_search_config() -> Dict[str, Any]:
    """
    Get search behaviour configuration.

    Returns:
        Dictionary with the persisted-state lifetime, where it is stored,
        the review fan-out width and the default provider kind.
    """
    return {
        "state_max_age_hours": get_secret("search.state_max_age_hours", 24),
        "state_file": get_secret("search.state_file", "data/session/search_state.json"),
        "review_workers": get_secret("search.review_workers", 8),
        "default_provider_kind": get_secret("search.default_provider_kind", "doctor"),
    }


def is_api_enabled(api_name: str) -> bool:
    """
    Check if a specific service is enabled and properly configured.

    Args:
        api_name: Name of the service to check

    Returns:
        True if the service is usable with the current configuration
    """
    if api_name == "directory":
        return bool(get_api_config("directory")["base_url"])
    elif api_name == "nominatim":
        config = get_api_config("geocoding")
        return config["provider"] == "nominatim" and bool(config["nominatim_user_agent"])
    else:
        return False


def validate_configuration() -> Dict[str, str]:
    """
    Validate the application configuration and return any warnings or errors.

    Returns:
        Dictionary with configuration validation results
    """
    issues = {}

    directory_config = get_api_config("directory")
    base_url = str(directory_config["base_url"] or "")
    if not base_url:
        issues["directory"] = "No directory base URL configured"
    elif not base_url.startswith(("http://", "https://")):
        issues["directory"] = "Directory base URL should start with http:// or https://"

    geocoding_config = get_api_config("geocoding")
    if geocoding_config["provider"] not in VALID_GEOCODING_PROVIDERS:
        issues["geocoding"] = f"Unknown geocoding provider: {geocoding_config['provider']}"

    search_config = get_search_config()
    try:
        if float(search_config["state_max_age_hours"]) <= 0:
            issues["search"] = "state_max_age_hours must be positive"
    except (TypeError, ValueError):
        issues["search"] = "state_max_age_hours must be a number"
    if search_config["default_provider_kind"] not in VALID_PROVIDER_KINDS:
        issues["search_kind"] = f"Unknown provider kind: {search_config['default_provider_kind']}"

    app_config = get_app_config()
    if app_config["environment"] not in ["development", "staging", "production"]:
        issues["app"] = f"Unknown environment: {app_config['environment']}"

    return issues


if __name__ == "__main__":
    print("Provider Finder - Configuration Status")
    print("=" * 50)

    issues = validate_configuration()
    if issues:
        print("⚠️  Configuration Issues Found:")
        for component, issue in issues.items():
            print(f"  - {component}: {issue}")
    else:
        print("✅ Configuration validation passed")

    print("\n📋 API Status:")
    for api in ["directory", "nominatim"]:
        status = "✅ Enabled" if is_api_enabled(api) else "❌ Disabled/Not configured"
        print(f"  - {api}: {status}")

    print(f"\n🔧 Environment: {get_app_config()['environment']}")
