# codegen/config_utils.py
import os
from pathlib import Path
from typing import Dict, Any, Optional
import toml
from dotenv import load_dotenv

from codegen.data_models import ProviderConfig

# --- Ultimate Fallback Defaults ---
# These are used if config.toml is missing or a key is not found,
# and no environment variable or runtime override is set.
ULTIMATE_DEFAULTS: Dict[str, Any] = {
    "provider": "anthropic",
    "model": "claude-3-7-sonnet-latest",
    "provider_splitter": None,  # None means: use 'provider'
    "model_splitter": None,     # None means: use 'model'
    "provider_coder": None,
    "model_coder": None,
    "provider_merger": None,
    "model_merger": None,
    "provider_reformatter": None,
    "model_reformatter": None,
    "transport": "native",
    "api_base": None,
    "temperature_splitter": 0.2,
    "temperature_coder": 0.5,
    "temperature_merger": 0.0,
    "temperature_reformatter": 0.0,
    "cooldown_seconds": 1.0,
    "continue_on_error": True,
    "allow_model_downgrade": True,
    "request_timeout": 300.0,
    "backup_dir": ".codegen/backups",
    "results_dir": ".codegen/results",
    "prompts_dir": ".codegen/prompts",
    "audit_enabled": True,
}

AGENT_ROLES = ("splitter", "coder", "merger", "reformatter")
SUPPORTED_PROVIDERS = ("openai", "anthropic", "gemini", "groq")

# Used when an agent switches provider without naming a model of its own.
PROVIDER_DEFAULT_MODELS: Dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-7-sonnet-latest",
    "gemini": "gemini-2.0-flash",
    "groq": "llama-3.3-70b-versatile",
}

API_KEY_ENV_VARS: Dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "groq": "GROQ_API_KEY",
}

# This dictionary will hold configurations loaded from config.toml
_CONFIG_FROM_TOML: Dict[str, Any] = {}

# Define module-level constants for limits
MAX_FILES_TO_PROCESS_IN_DIR = 1000
MAX_FILE_SIZE_BYTES = 5_000_000  # 5MB

DEFAULT_MAX_OUTPUT_TOKENS = 8192

# Per-model limits and the downgrade chain used when a provider answers 429/503.
MODEL_CONFIGURATIONS: Dict[str, Dict[str, Any]] = {
    "gpt-4o": {"max_output_tokens": 16384},
    "gpt-4o-mini": {"max_output_tokens": 16384},
    "o1-mini": {"max_output_tokens": 65536},
    "claude-3-7-sonnet-latest": {"max_output_tokens": 64000, "downgrade_to": "claude-3-5-sonnet-latest"},
    "claude-3-5-sonnet-latest": {"max_output_tokens": 8192, "downgrade_to": "claude-3-5-haiku-latest"},
    "claude-3-5-haiku-latest": {"max_output_tokens": 8192},
    "gemini-2.5-pro-exp-03-25": {"max_output_tokens": 65536, "downgrade_to": "gemini-2.0-pro-exp-02-05"},
    "gemini-2.0-pro-exp-02-05": {"max_output_tokens": 8192, "downgrade_to": "gemini-2.0-flash-lite"},
    "gemini-2.0-flash-lite": {"max_output_tokens": 8192, "downgrade_to": "gemini-2.0-flash"},
    "gemini-2.0-flash": {"max_output_tokens": 8192, "downgrade_to": "gemini-2.0-flash-exp"},
    "gemini-2.0-flash-exp": {"max_output_tokens": 8192, "downgrade_to": "gemini-1.5-pro"},
    "gemini-1.5-pro": {"max_output_tokens": 8192, "downgrade_to": "gemini-1.5-flash-latest"},
    "gemini-1.5-flash-latest": {"max_output_tokens": 8192},
    "llama-3.3-70b-versatile": {"max_output_tokens": 32768, "downgrade_to": "llama3-70b-8192"},
    "llama3-70b-8192": {"max_output_tokens": 8192},
}

SUPPORTED_SET_PARAMS: Dict[str, Dict[str, Any]] = {
    "provider": {
        "env_var": "CODEGEN_PROVIDER",
        "allowed_values": list(SUPPORTED_PROVIDERS),
        "description": "Default provider for every agent: 'openai', 'anthropic', 'gemini' or 'groq'."
    },
    "model": {
        "env_var": "CODEGEN_MODEL",
        "description": "Default model name for every agent (e.g., 'claude-3-7-sonnet-latest', 'gemini-2.0-flash')."
    },
    "transport": {
        "env_var": "CODEGEN_TRANSPORT",
        "allowed_values": ["native", "litellm"],
        "description": "'native' talks to each provider's own REST API; 'litellm' routes every call through LiteLLM."
    },
    "api_base": {
        "env_var": "CODEGEN_API_BASE",
        "description": "Overrides the provider API base URL (e.g., for a proxy)."
    },
    "cooldown_seconds": {
        "env_var": "CODEGEN_COOLDOWN_SECONDS",
        "description": "Pause between two file tasks, to stay under provider rate limits."
    },
    "continue_on_error": {
        "env_var": "CODEGEN_CONTINUE_ON_ERROR",
        "allowed_values": ["true", "false"],
        "description": "Keep processing the remaining files after a per-file failure."
    },
    "allow_model_downgrade": {
        "env_var": "CODEGEN_ALLOW_MODEL_DOWNGRADE",
        "allowed_values": ["true", "false"],
        "description": "Retry with the next smaller model when a provider is rate limited or overloaded."
    },
    "request_timeout": {
        "env_var": "CODEGEN_REQUEST_TIMEOUT",
        "description": "Timeout in seconds for a single model request."
    },
    "backup_dir": {
        "env_var": "CODEGEN_BACKUP_DIR",
        "description": "Folder (relative to the project root) receiving a copy of every overwritten file."
    },
    "results_dir": {
        "env_var": "CODEGEN_RESULTS_DIR",
        "description": "Folder where every raw model response is archived."
    },
    "prompts_dir": {
        "env_var": "CODEGEN_PROMPTS_DIR",
        "description": "Folder where every prompt sent to a model is archived."
    },
    "audit_enabled": {
        "env_var": "CODEGEN_AUDIT_ENABLED",
        "allowed_values": ["true", "false"],
        "description": "Write prompts and raw responses to the audit folders."
    },
}

for _role in AGENT_ROLES:
    SUPPORTED_SET_PARAMS[f"provider_{_role}"] = {
        "env_var": f"CODEGEN_PROVIDER_{_role.upper()}",
        "allowed_values": list(SUPPORTED_PROVIDERS),
        "description": f"Provider used by the {_role} agent (falls back to 'provider')."
    }
    SUPPORTED_SET_PARAMS[f"model_{_role}"] = {
        "env_var": f"CODEGEN_MODEL_{_role.upper()}",
        "description": f"Model used by the {_role} agent (falls back to 'model', or to the default model of provider_{_role} when that differs from 'provider')."
    }
    SUPPORTED_SET_PARAMS[f"temperature_{_role}"] = {
        "env_var": f"CODEGEN_TEMPERATURE_{_role.upper()}",
        "description": f"Sampling temperature of the {_role} agent (0.0 to 2.0)."
    }

FLOAT_PARAMS = {"cooldown_seconds", "request_timeout"} | {f"temperature_{role}" for role in AGENT_ROLES}
BOOL_PARAMS = {"continue_on_error", "allow_model_downgrade", "audit_enabled"}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def update_runtime_override(param_name: str, value: Any, runtime_overrides: Dict[str, Any], console_obj=None):
    """
    Updates a runtime override for a given parameter.
    Validates against SUPPORTED_SET_PARAMS.
    """
    param_name_lower = param_name.lower()
    if param_name_lower not in SUPPORTED_SET_PARAMS:
        if console_obj:
            console_obj.print(f"[red]Error: Unknown parameter '{param_name}'. Cannot set override.[/red]")
        return

    config_details = SUPPORTED_SET_PARAMS[param_name_lower]
    allowed_values = config_details.get("allowed_values")

    if allowed_values and str(value).lower() not in allowed_values:
        if console_obj:
            console_obj.print(f"[red]Error: Invalid value '{value}' for {param_name_lower}. Allowed values: {', '.join(allowed_values)}[/red]")
        return

    if param_name_lower in FLOAT_PARAMS:
        try:
            value = float(value)
            if value < 0:
                raise ValueError("Value must not be negative.")
            if param_name_lower.startswith("temperature_") and value > 2.0:
                raise ValueError("Temperature must be between 0.0 and 2.0.")
        except ValueError:
            if console_obj:
                console_obj.print(f"[red]Error: Invalid value '{value}' for {param_name_lower}. Must be a non-negative number.[/red]")
            return
    elif param_name_lower in BOOL_PARAMS:
        value = _coerce_bool(value)
    elif allowed_values:
        value = str(value).lower()

    runtime_overrides[param_name_lower] = value
    if console_obj:
        console_obj.print(f"[green]✓ Runtime override set: {param_name_lower} = {value}[/green]")


def remove_runtime_override(param_name: str, runtime_overrides: Dict[str, Any], console_obj=None):
    """Removes a runtime override."""
    if param_name.lower() in runtime_overrides:
        del runtime_overrides[param_name.lower()]
        if console_obj: console_obj.print(f"[yellow]✓ Runtime override removed for: {param_name.lower()}[/yellow]")
    elif console_obj: console_obj.print(f"[dim]No runtime override found for '{param_name.lower()}' to remove.[/dim]")


def list_runtime_overrides(runtime_overrides: Dict[str, Any], console_obj):
    """Lists current runtime overrides."""
    if not runtime_overrides:
        console_obj.print("[dim]No active runtime overrides.[/dim]")
        return
    console_obj.print("[bold blue]Active Runtime Overrides:[/bold blue]")
    for key, value in runtime_overrides.items():
        console_obj.print(f"  - {key}: {value}")


def load_configuration(console_obj, config_path: str = "config.toml"):
    """
    Loads .env file into environment variables and config.toml into _CONFIG_FROM_TOML.

    config.toml layout:
        [providers]  default = "anthropic", splitter = "...", coder = "...", ...
        [models]     default = "...", splitter = "...", ...
        [temperatures] splitter = 0.2, coder = 0.5, ...
        [pipeline]   cooldown_seconds, continue_on_error, allow_model_downgrade, transport, request_timeout
        [paths]      backup_dir, results_dir, prompts_dir
        [audit]      enabled
        [api_bases]  default = "http://proxy/v1"
    """
    load_dotenv()
    _CONFIG_FROM_TOML.clear()

    toml_config_path = Path(config_path)
    if not toml_config_path.exists():
        return
    try:
        loaded_toml = toml.load(toml_config_path)
    except (toml.TomlDecodeError, OSError) as e:
        if console_obj:
            console_obj.print(f"[yellow]Warning: Could not load or parse {config_path}: {e}. Using internal defaults.[/yellow]")
        return

    # Flatten TOML structure into _CONFIG_FROM_TOML so keys match SUPPORTED_SET_PARAMS
    # e.g., providers.default -> "provider", models.coder -> "model_coder"
    for section, prefix in (("providers", "provider"), ("models", "model"), ("temperatures", "temperature")):
        values = loaded_toml.get(section)
        if isinstance(values, dict):
            for key, value in values.items():
                param_key = prefix if key == "default" else f"{prefix}_{key}"
                _CONFIG_FROM_TOML[param_key] = value

    for section in ("pipeline", "paths"):
        values = loaded_toml.get(section)
        if isinstance(values, dict):
            _CONFIG_FROM_TOML.update(values)

    if isinstance(loaded_toml.get("audit"), dict) and "enabled" in loaded_toml["audit"]:
        _CONFIG_FROM_TOML["audit_enabled"] = loaded_toml["audit"]["enabled"]

    if isinstance(loaded_toml.get("api_bases"), dict):
        for key, value in loaded_toml["api_bases"].items():
            _CONFIG_FROM_TOML["api_base" if key == "default" else f"api_base_{key}"] = value


def _convert(param_name: str, value: Any, fallback: Any) -> Any:
    if value is None:
        return None
    if param_name in FLOAT_PARAMS:
        try:
            return float(value)
        except (TypeError, ValueError):
            return fallback
    if param_name in BOOL_PARAMS:
        return _coerce_bool(value)
    return value


def get_config_value(param_name: str, runtime_overrides: Dict[str, Any], console_obj=None) -> Any:
    """
    Retrieves a configuration value based on precedence:
    1. Runtime overrides
    2. Environment variables
    3. Values from config.toml (_CONFIG_FROM_TOML)
    4. Ultimate hardcoded defaults (ULTIMATE_DEFAULTS)
    Per-agent 'provider_<role>' / 'model_<role>' fall back to 'provider' / 'model'.
    """
    if param_name not in SUPPORTED_SET_PARAMS:
        if console_obj:
            console_obj.print(f"[yellow]Warning: Attempted to get unknown config param '{param_name}'. Using default.[/yellow]")
        return ULTIMATE_DEFAULTS.get(param_name)

    p_config = SUPPORTED_SET_PARAMS[param_name]
    fallback = _CONFIG_FROM_TOML.get(param_name, ULTIMATE_DEFAULTS.get(param_name))

    runtime_val = runtime_overrides.get(param_name)
    if runtime_val is not None:
        return _convert(param_name, runtime_val, fallback)

    env_val = os.getenv(p_config["env_var"]) if p_config.get("env_var") else None
    if env_val is not None:
        allowed_values = p_config.get("allowed_values")
        if allowed_values is None or env_val.lower() in allowed_values:
            return _convert(param_name, env_val.lower() if allowed_values else env_val, fallback)

    toml_val = _CONFIG_FROM_TOML.get(param_name)
    if toml_val is not None:
        return _convert(param_name, toml_val, ULTIMATE_DEFAULTS.get(param_name))

    if param_name.startswith(("provider_", "model_")):
        return get_config_value(param_name.split("_", 1)[0], runtime_overrides, console_obj)

    return ULTIMATE_DEFAULTS.get(param_name)


def get_model_max_output_tokens(model_name: str) -> int:
    """Looks up the output token limit by exact name, then by longest matching prefix."""
    if model_name in MODEL_CONFIGURATIONS:
        return MODEL_CONFIGURATIONS[model_name].get("max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS)
    for prefix in sorted(MODEL_CONFIGURATIONS.keys(), key=len, reverse=True):
        if model_name.startswith(prefix):
            return MODEL_CONFIGURATIONS[prefix].get("max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS)
    return DEFAULT_MAX_OUTPUT_TOKENS


def downgrade_model(model_name: str) -> Optional[str]:
    """Returns the next smaller model to try, or None at the end of the chain."""
    return MODEL_CONFIGURATIONS.get(model_name, {}).get("downgrade_to")


def _is_explicitly_set(param_name: str, runtime_overrides: Dict[str, Any]) -> bool:
    env_var = SUPPORTED_SET_PARAMS[param_name].get("env_var")
    return (
        runtime_overrides.get(param_name) is not None
        or (env_var is not None and os.getenv(env_var) is not None)
        or _CONFIG_FROM_TOML.get(param_name) is not None
    )


def get_provider_config(role: str, runtime_overrides: Dict[str, Any], console_obj=None) -> ProviderConfig:
    """Builds the explicit ProviderConfig an agent passes along with each of its requests."""
    if role not in AGENT_ROLES:
        raise ValueError(f"Unknown agent role '{role}'. Expected one of: {', '.join(AGENT_ROLES)}")
    provider = str(get_config_value(f"provider_{role}", runtime_overrides, console_obj)).lower()
    model = str(get_config_value(f"model_{role}", runtime_overrides, console_obj))
    default_provider = str(get_config_value("provider", runtime_overrides, console_obj)).lower()
    if provider != default_provider and not _is_explicitly_set(f"model_{role}", runtime_overrides) and provider in PROVIDER_DEFAULT_MODELS:
        fallback_model = PROVIDER_DEFAULT_MODELS[provider]
        if console_obj:
            console_obj.print(f"[yellow]Warning: provider_{role} is '{provider}' but model_{role} is not set. Using '{fallback_model}' instead of '{model}'.[/yellow]")
        model = fallback_model
    api_base = _CONFIG_FROM_TOML.get(f"api_base_{provider}") or get_config_value("api_base", runtime_overrides, console_obj)
    return ProviderConfig(
        provider=provider,
        model=model,
        api_key=os.getenv(API_KEY_ENV_VARS.get(provider, "")) if provider in API_KEY_ENV_VARS else None,
        api_base=api_base,
        max_output_tokens=get_model_max_output_tokens(model),
        transport=str(get_config_value("transport", runtime_overrides, console_obj)).lower(),
        timeout=float(get_config_value("request_timeout", runtime_overrides, console_obj)),
    )


def get_temperature(role: str, runtime_overrides: Dict[str, Any], console_obj=None) -> float:
    value = get_config_value(f"temperature_{role}", runtime_overrides, console_obj)
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(ULTIMATE_DEFAULTS[f"temperature_{role}"])
