"""
Shared pieces of the built-in plugins.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dappforge.models.codegen import CodegenOutput

# Version constraint of every npm package the built-in plugins depend on
PACKAGE_VERSIONS = {
    "@biomejs/biome": "^1.8.3",
    "@rainbow-me/rainbowkit": "^2.1.0",
    "@tanstack/react-query": "^5.51.0",
    "@types/node": "^20.14.0",
    "@types/react": "^18.3.3",
    "@vitest/coverage-v8": "^2.0.5",
    "eslint": "^9.8.0",
    "grammy": "^1.30.0",
    "husky": "^9.1.4",
    "jest": "^29.7.0",
    "lint-staged": "^15.2.7",
    "mocha": "^10.7.0",
    "next": "14.2.5",
    "prettier": "^3.3.3",
    "react": "^18.3.1",
    "react-dom": "^18.3.1",
    "tailwindcss": "^3.4.7",
    "telegraf": "^4.16.3",
    "ts-node": "^10.9.2",
    "typescript": "^5.5.0",
    "viem": "^2.21.0",
    "vitest": "^2.0.5",
    "wagmi": "^2.12.0",
}


class NodeConfig(BaseModel):
    """Base config every node type shares (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    label: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


def addresses_from(outputs: Iterable[CodegenOutput]) -> list[tuple[str, str]]:
    """(env key, default) of every '*_ADDRESS' env var exposed by producer outputs."""
    found: dict[str, str] = {}
    for output in outputs:
        for var in output.env_vars:
            if var.key.endswith("_ADDRESS"):
                found.setdefault(var.key, var.default_value or "")
    return sorted(found.items())
