"""
Frontend scaffold plugin.

Generates a Next.js Web3 application (wagmi + viem, RainbowKit, TanStack
Query, Tailwind). Its presence switches the path router to the
apps/web layout, so every frontend category of every other plugin lands
inside this app.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from dappforge.models.blueprint import BlueprintNode, NetworkConfig
from dappforge.models.codegen import CodegenOutput
from dappforge.models.context import ExecutionContext
from dappforge.models.node_registry import (
    PluginDependency,
    PluginMetadata,
    PluginPort,
    node_plugin,
)
from dappforge.plugins.common import PACKAGE_VERSIONS, NodeConfig, addresses_from

DEFAULT_NETWORK = NetworkConfig(
    chain_id=421614,
    name="Arbitrum Sepolia",
    rpc_url="https://sepolia-rollup.arbitrum.io/rpc",
    explorer_url="https://sepolia.arbiscan.io",
    is_testnet=True,
)


class FrontendScaffoldConfig(NodeConfig):
    framework: Literal["nextjs", "vite-react", "remix"] = "nextjs"
    styling: Literal["tailwind", "css-modules", "styled-components"] = "tailwind"
    web3_provider: Literal["wagmi", "ethers", "viem"] = "wagmi"
    wallet_connect: bool = True
    rainbow_kit: bool = True
    siwe_auth: bool = False
    include_contracts: bool = True
    generate_contract_hooks: bool = True
    project_structure: Literal["app-router", "pages-router"] = "app-router"
    src_directory: bool = True
    state_management: Literal["tanstack-query", "zustand", "none"] = "tanstack-query"
    ssr_enabled: bool = True
    dark_mode_support: bool = True
    app_name: str = Field(default="My DApp", min_length=1, max_length=100)


@node_plugin(
    metadata=PluginMetadata(
        id="frontend-scaffold",
        name="Frontend Scaffold",
        description="Generate a Next.js Web3 application with wagmi, RainbowKit, and smart contract integration",
        category="app",
        tags=("nextjs", "web3", "wagmi", "rainbowkit", "frontend", "scaffold", "dapp"),
    ),
    config_schema=FrontendScaffoldConfig,
    ports=[
        PluginPort(id="contract-in", name="Contract ABI", direction="input", data_type="contract"),
        PluginPort(id="network-in", name="Network Config", direction="input", data_type="config"),
        PluginPort(id="app-out", name="App Context", direction="output", data_type="config"),
    ],
    dependencies=[
        PluginDependency(plugin_id="wallet-auth", data_mapping={"auth-out": "auth-config"}),
        PluginDependency(plugin_id="superposition-network", data_mapping={"network-out": "network-config"}),
    ],
)
def frontend_scaffold(node: BlueprintNode, context: ExecutionContext) -> CodegenOutput:
    config: FrontendScaffoldConfig = context.config
    paths = context.path_context
    output = CodegenOutput()

    context.logger.info(
        "Generating frontend scaffold: %s (%s, %s)",
        config.app_name,
        config.framework,
        config.styling,
    )

    network = context.blueprint_config.network or DEFAULT_NETWORK
    use_rainbow_kit = config.rainbow_kit
    has_wallet_auth = context.input("auth-config") is not None

    # App-level config files sit at the app root, next to src/
    app_root = paths.frontend_path
    output.add_file(f"{app_root}/next.config.js", _next_config())
    output.add_file(f"{app_root}/tsconfig.json", _tsconfig(paths.frontend_src_path))

    if config.project_structure == "app-router":
        output.add_file("layout.tsx", _app_layout(config), "frontend-app")
        output.add_file("page.tsx", _home_page(config), "frontend-app")
        output.add_file("providers.tsx", _providers(use_rainbow_kit), "frontend-app")
    else:
        pages_root = "/".join(p for p in (app_root, paths.frontend_src_path, "pages") if p)
        output.add_file(f"{pages_root}/_app.tsx", _pages_app(config))
        output.add_file(f"{pages_root}/index.tsx", _home_page(config))
        output.add_file("providers.tsx", _providers(use_rainbow_kit), "frontend-lib")

    output.add_file("wagmi.ts", _wagmi_config(config, use_rainbow_kit, has_wallet_auth), "frontend-lib")
    output.add_file("chains.ts", _chain_config(network), "frontend-lib")
    output.add_file("utils.ts", _utils(), "frontend-lib")
    output.add_file("wallet-button.tsx", _wallet_button(use_rainbow_kit), "frontend-components")
    output.add_file("env.d.ts", _env_types(), "frontend-types")

    if config.styling == "tailwind":
        output.add_file(f"{app_root}/tailwind.config.js", _tailwind_config(config))
        output.add_file("globals.css", _global_styles(), "frontend-styles")

    if config.include_contracts and config.generate_contract_hooks:
        contracts = addresses_from(context.inputs.get("contract-in", ()))
        if contracts:
            output.add_file("useContracts.ts", _contract_hooks(contracts), "frontend-hooks")

    output.add_env_var(
        "NEXT_PUBLIC_WALLETCONNECT_PROJECT_ID",
        "WalletConnect Cloud project ID for wallet connections",
        required=config.wallet_connect,
    )
    output.add_env_var(
        "NEXT_PUBLIC_APP_NAME",
        "Application name displayed in wallet dialogs",
        required=False,
        default_value=config.app_name,
    )
    if context.input("network-config") is not None:
        output.add_env_var(
            "NEXT_PUBLIC_SUPERPOSITION_RPC_URL",
            "Superposition L3 RPC endpoint",
            required=False,
            default_value="https://rpc.superposition.so",
        )

    output.add_script("dev", f"next dev {app_root}", "Start development server")
    output.add_script("build", f"next build {app_root}", "Build for production")
    output.add_script("start", f"next start {app_root}", "Start production server")
    output.add_script("lint:web", f"next lint --dir {app_root}", "Run ESLint on the app")

    for name in ("next", "react", "react-dom", "wagmi", "viem"):
        output.add_dependency(name, PACKAGE_VERSIONS[name])
    if config.state_management == "tanstack-query":
        output.add_dependency("@tanstack/react-query", PACKAGE_VERSIONS["@tanstack/react-query"])
    if use_rainbow_kit:
        output.add_dependency("@rainbow-me/rainbowkit", PACKAGE_VERSIONS["@rainbow-me/rainbowkit"])
    if config.styling == "tailwind":
        output.add_dependency("tailwindcss", PACKAGE_VERSIONS["tailwindcss"], dev=True)
    for name in ("typescript", "@types/node", "@types/react"):
        output.add_dependency(name, PACKAGE_VERSIONS[name], dev=True)

    output.add_doc("docs/frontend/README.md", "Frontend Application", _frontend_docs(config, app_root))

    context.logger.info("Generated frontend scaffold with %d files", len(output.files))
    return output


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _next_config() -> str:
    return f"""/** @type {{import('next').NextConfig}} */
const nextConfig = {{
  reactStrictMode: true,
  webpack: (config) => {{
    config.externals.push('pino-pretty', 'lokijs', 'encoding');
    return config;
  }},
}};

module.exports = nextConfig;
"""


def _tsconfig(src_path: str) -> str:
    alias = f"./{src_path}/*" if src_path else "./*"
    return f"""{{
  "compilerOptions": {{
    "target": "ES2020",
    "lib": ["dom", "dom.iterable", "esnext"],
    "strict": true,
    "noEmit": true,
    "module": "esnext",
    "moduleResolution": "bundler",
    "jsx": "preserve",
    "incremental": true,
    "plugins": [{{ "name": "next" }}],
    "paths": {{ "@/*": ["{alias}"] }}
  }},
  "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx", ".next/types/**/*.ts"],
  "exclude": ["node_modules"]
}}
"""


def _app_layout(config: FrontendScaffoldConfig) -> str:
    styles = "import '@/styles/globals.css';\n" if config.styling == "tailwind" else ""
    body_class = ' className="dark"' if config.dark_mode_support else ""
    return f"""{styles}import type {{ Metadata }} from 'next';
import {{ Providers }} from './providers';

export const metadata: Metadata = {{
  title: '{config.app_name}',
}};

export default function RootLayout({{ children }}: {{ children: React.ReactNode }}) {{
  return (
    <html lang="en"{body_class}>
      <body>
        <Providers>{{children}}</Providers>
      </body>
    </html>
  );
}}
"""


def _pages_app(config: FrontendScaffoldConfig) -> str:
    return f"""import type {{ AppProps }} from 'next/app';
import {{ Providers }} from '@/lib/providers';

// {config.app_name}
export default function App({{ Component, pageProps }}: AppProps) {{
  return (
    <Providers>
      <Component {{...pageProps}} />
    </Providers>
  );
}}
"""


def _home_page(config: FrontendScaffoldConfig) -> str:
    return f"""import {{ WalletButton }} from '@/components/wallet-button';

export default function Home() {{
  return (
    <main className="flex min-h-screen flex-col items-center justify-center gap-6">
      <h1 className="text-4xl font-bold">{config.app_name}</h1>
      <WalletButton />
    </main>
  );
}}
"""


def _providers(use_rainbow_kit: bool) -> str:
    rainbow_import = (
        "import { RainbowKitProvider } from '@rainbow-me/rainbowkit';\n"
        "import '@rainbow-me/rainbowkit/styles.css';\n"
        if use_rainbow_kit else ""
    )
    inner = "<RainbowKitProvider>{children}</RainbowKitProvider>" if use_rainbow_kit else "{children}"
    return f"""'use client';

import {{ QueryClient, QueryClientProvider }} from '@tanstack/react-query';
import {{ WagmiProvider }} from 'wagmi';
{rainbow_import}import {{ wagmiConfig }} from '@/lib/wagmi';

const queryClient = new QueryClient();

export function Providers({{ children }}: {{ children: React.ReactNode }}) {{
  return (
    <WagmiProvider config={{wagmiConfig}}>
      <QueryClientProvider client={{queryClient}}>
        {inner}
      </QueryClientProvider>
    </WagmiProvider>
  );
}}
"""


def _wagmi_config(config: FrontendScaffoldConfig, use_rainbow_kit: bool, has_wallet_auth: bool) -> str:
    if use_rainbow_kit:
        if has_wallet_auth:
            auth_import = "import { walletAuthConfig } from './auth/wallet-auth';\n"
            app_name = "walletAuthConfig.appName"
        else:
            auth_import = ""
            app_name = f"process.env.NEXT_PUBLIC_APP_NAME ?? '{config.app_name}'"
        return f"""import {{ getDefaultConfig }} from '@rainbow-me/rainbowkit';
{auth_import}import {{ appChain }} from './chains';

export const wagmiConfig = getDefaultConfig({{
  appName: {app_name},
  projectId: process.env.NEXT_PUBLIC_WALLETCONNECT_PROJECT_ID ?? '',
  chains: [appChain],
  ssr: {str(config.ssr_enabled).lower()},
}});
"""
    return f"""import {{ createConfig, http }} from 'wagmi';
import {{ injected }} from 'wagmi/connectors';
import {{ appChain }} from './chains';

export const wagmiConfig = createConfig({{
  chains: [appChain],
  connectors: [injected()],
  transports: {{ [appChain.id]: http() }},
  ssr: {str(config.ssr_enabled).lower()},
}});
"""


def _chain_config(network: NetworkConfig) -> str:
    rpc_url = network.rpc_url or ""
    explorer = (
        f"\n  blockExplorers: {{ default: {{ name: 'Explorer', url: '{network.explorer_url}' }} }},"
        if network.explorer_url else ""
    )
    return f"""import {{ defineChain }} from 'viem';

export const appChain = defineChain({{
  id: {network.chain_id},
  name: '{network.name}',
  nativeCurrency: {{ name: 'Ether', symbol: 'ETH', decimals: 18 }},
  rpcUrls: {{ default: {{ http: ['{rpc_url}'] }} }},{explorer}
  testnet: {str(network.is_testnet).lower()},
}});
"""


def _utils() -> str:
    return """export function cn(...classes: Array<string | false | null | undefined>): string {
  return classes.filter(Boolean).join(' ');
}
"""


def _wallet_button(use_rainbow_kit: bool) -> str:
    if use_rainbow_kit:
        return """'use client';

import { ConnectButton } from '@rainbow-me/rainbowkit';

export function WalletButton() {
  return <ConnectButton />;
}
"""
    return """'use client';

import { useAccount, useConnect, useDisconnect } from 'wagmi';

export function WalletButton() {
  const { address, isConnected } = useAccount();
  const { connect, connectors } = useConnect();
  const { disconnect } = useDisconnect();

  if (isConnected) {
    return <button onClick={() => disconnect()}>{address?.slice(0, 6)}...{address?.slice(-4)}</button>;
  }
  return <button onClick={() => connect({ connector: connectors[0] })}>Connect Wallet</button>;
}
"""


def _env_types() -> str:
    return """declare namespace NodeJS {
  interface ProcessEnv {
    NEXT_PUBLIC_WALLETCONNECT_PROJECT_ID?: string;
    NEXT_PUBLIC_APP_NAME?: string;
  }
}
"""


def _tailwind_config(config: FrontendScaffoldConfig) -> str:
    dark_mode = "  darkMode: 'class',\n" if config.dark_mode_support else ""
    return f"""/** @type {{import('tailwindcss').Config}} */
module.exports = {{
{dark_mode}  content: ['./**/*.{{ts,tsx}}'],
  theme: {{ extend: {{}} }},
  plugins: [],
}};
"""


def _global_styles() -> str:
    return """@tailwind base;
@tailwind components;
@tailwind utilities;
"""


def _contract_hooks(contracts: list[tuple[str, str]]) -> str:
    entries = "\n".join(
        f"  {key.removeprefix('NEXT_PUBLIC_').lower()}: process.env.{key} as Address | undefined,"
        for key, _ in contracts
    )
    return f"""import type {{ Address }} from 'viem';

export const contractAddresses = {{
{entries}
}} as const;

export function useContractAddress(name: keyof typeof contractAddresses): Address | undefined {{
  return contractAddresses[name];
}}
"""


def _frontend_docs(config: FrontendScaffoldConfig, app_root: str) -> str:
    features = [
        ("WalletConnect integration", config.wallet_connect),
        ("RainbowKit wallet UI", config.rainbow_kit),
        ("Sign-In With Ethereum (SIWE)", config.siwe_auth),
        ("Smart contract integration", config.include_contracts),
        ("Dark mode support", config.dark_mode_support),
        ("Server-side rendering", config.ssr_enabled),
    ]
    feature_lines = "\n".join(f"- {name}" for name, enabled in features if enabled)
    return f"""{config.app_name} is a Next.js Web3 application living in `{app_root}`.

## Tech Stack

- **Framework**: {config.framework}
- **Styling**: {config.styling}
- **Web3**: {config.web3_provider}
- **State Management**: {config.state_management}

## Getting Started

1. Install dependencies with `pnpm install`
2. Copy `.env.example` to `.env.local` and fill in the values
3. Start the development server with `pnpm dev`

## Features

{feature_lines}
"""
