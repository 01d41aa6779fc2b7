"""
Arcade configuration — all environment variables in one place.

Read from environment at runtime.
"""

from __future__ import annotations

import os

from engine.pipeline.normalizer import NormalizerConfig


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Settings:
    """Application settings from environment variables."""

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Preview
    PREVIEW_DEBOUNCE_MS: int = int(os.environ.get("PREVIEW_DEBOUNCE_MS", "500"))

    # Toolchain (Node bridge running the compiler and formatter)
    NODE_BINARY: str = os.environ.get("NODE_BINARY", "node")
    NODE_BRIDGE_SCRIPT: str = os.environ.get("NODE_BRIDGE_SCRIPT", "")

    # Modules the sandbox provides as globals; their imports are stripped
    COMPONENT_LIBRARY_MODULES: tuple[str, ...] = _csv(
        os.environ.get("COMPONENT_LIBRARY_MODULES", "@navikt/ds-react,@navikt/aksel-icons")
    )
    RUNTIME_MODULE: str = os.environ.get("RUNTIME_MODULE", "react")
    LOGIC_MODULES: tuple[str, ...] = _csv(os.environ.get("LOGIC_MODULES", "./hooks,."))

    # Sandbox page
    COMPONENT_BUNDLE_URL: str = os.environ.get("COMPONENT_BUNDLE_URL", "")
    # Origins other than the server itself allowed to open /ws/sandbox
    SANDBOX_ALLOWED_ORIGINS: tuple[str, ...] = _csv(os.environ.get("SANDBOX_ALLOWED_ORIGINS", ""))
    REACT_CDN_URL: str = os.environ.get("REACT_CDN_URL", "https://unpkg.com/react@18/umd/react.production.min.js")
    REACT_DOM_CDN_URL: str = os.environ.get(
        "REACT_DOM_CDN_URL", "https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"
    )

    @property
    def PREVIEW_DEBOUNCE_SECONDS(self) -> float:
        return self.PREVIEW_DEBOUNCE_MS / 1000

    @property
    def normalizer_config(self) -> NormalizerConfig:
        return NormalizerConfig(
            component_modules=self.COMPONENT_LIBRARY_MODULES,
            runtime_module=self.RUNTIME_MODULE,
            logic_modules=self.LOGIC_MODULES,
        )


# Singleton instance
settings = Settings()

if settings.PREVIEW_DEBOUNCE_MS < 0:
    raise RuntimeError("PREVIEW_DEBOUNCE_MS must not be negative")
