"""
Application configuration.

Responsibilities:
- Load environment variables (and a local .env file)
- Pick the generation backend and its providers
- Hold size limits, deadlines and CORS origins
"""
import os
from typing import List, Mapping, Optional

from dotenv import load_dotenv

BACKENDS = ("echo", "single", "multi")

DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:5174"]


def _get_bool(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    value = env.get(key)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_float(env: Mapping[str, str], key: str, default: Optional[float]) -> Optional[float]:
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}")


def _get_list(env: Mapping[str, str], key: str, default: List[str]) -> List[str]:
    value = env.get(key)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    def __init__(
        self,
        backend: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        gemini_model: str = "gemini-1.5-flash",
        ollama_host: Optional[str] = None,
        ollama_model: str = "llava",
        ollama_api_key: Optional[str] = None,
        default_provider: str = "gemini",
        max_image_mb: float = 15.0,
        max_body_mb: float = 50.0,
        backend_timeout: Optional[float] = 60.0,
        echo_delay: float = 1.0,
        echo_seed: Optional[int] = None,
        cors_origins: Optional[List[str]] = None,
        host: str = "0.0.0.0",
        port: int = 3001,
        debug: bool = False,
        log_level: str = "INFO",
    ):
        if backend is None:
            backend = "single" if gemini_api_key else "echo"
        if backend not in BACKENDS:
            raise ValueError(f"BACKEND must be one of {', '.join(BACKENDS)}, got {backend!r}")

        self.backend = backend
        self.gemini_api_key = gemini_api_key
        self.gemini_model = gemini_model
        self.ollama_host = ollama_host
        self.ollama_model = ollama_model
        self.ollama_api_key = ollama_api_key
        self.default_provider = default_provider
        self.max_image_mb = max_image_mb
        self.max_body_mb = max_body_mb
        self.backend_timeout = backend_timeout
        self.echo_delay = echo_delay
        self.echo_seed = echo_seed
        self.cors_origins = list(cors_origins) if cors_origins is not None else list(DEFAULT_CORS_ORIGINS)
        self.host = host
        self.port = port
        self.debug = debug
        self.log_level = log_level.upper()

    @property
    def gemini_configured(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def max_body_bytes(self) -> int:
        return int(self.max_body_mb * 1024 * 1024)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Config":
        """Build the configuration from ``env`` (defaults to os.environ after loading .env)."""
        if env is None:
            load_dotenv()
            env = os.environ

        echo_seed = env.get("ECHO_SEED")
        timeout = _get_float(env, "BACKEND_TIMEOUT_SECONDS", 60.0)
        return cls(
            backend=(env.get("BACKEND") or None),
            gemini_api_key=env.get("GEMINI_API_KEY") or env.get("GOOGLE_AI_STUDIO_API_KEY") or None,
            gemini_model=env.get("GEMINI_MODEL", "gemini-1.5-flash"),
            ollama_host=env.get("OLLAMA_HOST") or None,
            ollama_model=env.get("OLLAMA_MODEL", "llava"),
            ollama_api_key=env.get("OLLAMA_API_KEY") or None,
            default_provider=env.get("DEFAULT_PROVIDER", "gemini"),
            max_image_mb=_get_float(env, "MAX_IMAGE_MB", 15.0),
            max_body_mb=_get_float(env, "MAX_BODY_MB", 50.0),
            backend_timeout=timeout if timeout and timeout > 0 else None,
            echo_delay=_get_float(env, "ECHO_DELAY_SECONDS", 1.0),
            echo_seed=int(echo_seed) if echo_seed else None,
            cors_origins=_get_list(env, "CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "3001")),
            debug=_get_bool(env, "DEBUG"),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )
