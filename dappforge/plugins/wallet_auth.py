"""
Wallet authentication plugin.

Configures wallet connection (RainbowKit + WalletConnect by default). The
frontend scaffold reads this node's output through its 'auth-config' slot.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field

from dappforge.models.blueprint import BlueprintNode
from dappforge.models.codegen import CodegenOutput
from dappforge.models.context import ExecutionContext
from dappforge.models.node_registry import PluginMetadata, PluginPort, node_plugin
from dappforge.plugins.common import PACKAGE_VERSIONS, NodeConfig

SocialLogin = Literal["google", "twitter", "discord", "github"]


class WalletAuthConfig(NodeConfig):
    provider: Literal["rainbowkit", "web3modal", "custom"] = "rainbowkit"
    wallet_connect_enabled: bool = True
    siwe_enabled: bool = True
    social_logins: list[SocialLogin] = Field(default_factory=list)
    session_persistence: bool = True
    app_name: Optional[str] = Field(default=None, min_length=1, max_length=100)


@node_plugin(
    metadata=PluginMetadata(
        id="wallet-auth",
        name="Wallet Authentication",
        description="Wallet connection with RainbowKit and WalletConnect",
        category="app",
        tags=("wallet", "authentication", "rainbowkit", "walletconnect", "web3"),
    ),
    config_schema=WalletAuthConfig,
    ports=[
        PluginPort(id="auth-out", name="Auth Context", direction="output", data_type="config"),
    ],
)
def wallet_auth(node: BlueprintNode, context: ExecutionContext) -> CodegenOutput:
    config: WalletAuthConfig = context.config
    output = CodegenOutput()

    output.add_file(
        "auth/wallet-auth.ts",
        _auth_config(config),
        "frontend-lib",
    )

    output.add_env_var(
        "NEXT_PUBLIC_WALLETCONNECT_PROJECT_ID",
        "WalletConnect Cloud project ID",
        required=config.provider == "rainbowkit",
    )
    output.add_env_var(
        "NEXT_PUBLIC_APP_NAME",
        "Application name for wallet dialogs",
        required=False,
        default_value=config.app_name,
    )
    output.add_script(
        "wallet:setup",
        'echo "Get your WalletConnect Project ID from https://dashboard.reown.com"',
        "Instructions for wallet setup",
    )

    if config.provider == "rainbowkit":
        output.add_dependency("@rainbow-me/rainbowkit", PACKAGE_VERSIONS["@rainbow-me/rainbowkit"])
    output.add_dependency("wagmi", PACKAGE_VERSIONS["wagmi"])
    output.add_dependency("viem", PACKAGE_VERSIONS["viem"])

    context.logger.info("Generated wallet authentication: %s", config.provider)
    return output


def _auth_config(config: WalletAuthConfig) -> str:
    social = ", ".join(f"'{s}'" for s in config.social_logins)
    return f"""export const walletAuthConfig = {{
  provider: '{config.provider}',
  appName: process.env.NEXT_PUBLIC_APP_NAME ?? '{config.app_name or "My DApp"}',
  walletConnectEnabled: {str(config.wallet_connect_enabled).lower()},
  siweEnabled: {str(config.siwe_enabled).lower()},
  socialLogins: [{social}],
  sessionPersistence: {str(config.session_persistence).lower()},
}} as const;
"""
