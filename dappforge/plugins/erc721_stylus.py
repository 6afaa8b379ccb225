"""
ERC-721 Stylus NFT plugin.

Generates the Rust contract for Arbitrum Stylus, a deployment script, a
typed client library and a React interaction panel.
"""

from __future__ import annotations

import json
from typing import Literal, Optional

from pydantic import Field

from dappforge.models.blueprint import BlueprintNode
from dappforge.models.codegen import CodegenOutput
from dappforge.models.context import ExecutionContext
from dappforge.models.node_registry import PluginMetadata, PluginPort, node_plugin
from dappforge.plugins.common import PACKAGE_VERSIONS, NodeConfig

NFTFeature = Literal["ownable", "mintable", "burnable", "pausable", "enumerable", "uri-storage"]

RPC_ENDPOINTS = {
    "arbitrum": "https://arb1.arbitrum.io/rpc",
    "arbitrum-sepolia": "https://sepolia-rollup.arbitrum.io/rpc",
}


class ERC721StylusConfig(NodeConfig):
    collection_name: str = Field(default="My NFT Collection", min_length=1, max_length=64)
    collection_symbol: str = Field(default="MNFT", min_length=1, max_length=11, pattern=r"^[A-Z0-9]+$")
    base_uri: str = "https://api.example.com/metadata/"
    network: Literal["arbitrum", "arbitrum-sepolia"] = "arbitrum-sepolia"
    features: list[NFTFeature] = Field(
        default_factory=lambda: ["ownable", "mintable", "burnable", "pausable", "enumerable"]
    )
    is_deployed: bool = False
    contract_address: Optional[str] = Field(default=None, pattern=r"^0x[a-fA-F0-9]{40}$")


@node_plugin(
    metadata=PluginMetadata(
        id="erc721-stylus",
        name="ERC-721 Stylus NFT",
        description="Deploy and interact with ERC-721 NFTs on Arbitrum Stylus",
        category="contracts",
        tags=("erc721", "nft", "arbitrum", "stylus", "deployment"),
    ),
    config_schema=ERC721StylusConfig,
    ports=[
        PluginPort(id="wallet-in", name="Wallet Connection", direction="input", data_type="config"),
        PluginPort(id="nft-out", name="NFT Contract", direction="output", data_type="contract"),
    ],
    component_path_mappings={
        "src/ERC721NFTPanel.tsx": "frontend-components",
        "src/cn.ts": "frontend-lib",
        "contract/**": "contract-source",
    },
)
def erc721_stylus(node: BlueprintNode, context: ExecutionContext) -> CodegenOutput:
    config: ERC721StylusConfig = context.config
    output = CodegenOutput()

    # Uncategorized files, placed by the component path mappings
    output.add_file("contract/Cargo.toml", _cargo_toml(config))
    output.add_file("contract/src/lib.rs", _contract_source(config))
    output.add_file("src/cn.ts", _cn())
    output.add_file("src/ERC721NFTPanel.tsx", _nft_panel(config))

    output.add_file("deploy-erc721.ts", _deploy_script(config), "contract-scripts")
    output.add_file("erc721-nft.ts", _nft_lib(config), "frontend-lib")

    output.add_env_var(
        "NEXT_PUBLIC_NFT_ADDRESS",
        "Deployed ERC721 NFT address",
        required=False,
        default_value=config.contract_address,
    )
    output.add_env_var(
        "PRIVATE_KEY",
        "Private key for deployment and transactions",
        required=True,
        secret=True,
    )
    output.add_env_var(
        "ERC721_DEPLOYMENT_API_URL",
        "URL of the ERC721 deployment API",
        required=False,
        default_value="http://localhost:4001",
    )

    output.add_script("deploy:erc721", "ts-node scripts/deploy-erc721.ts", "Deploy ERC721 collection")
    output.add_script("nft:info", "ts-node scripts/nft-info.ts", "Get NFT collection information")

    output.add_dependency("viem", PACKAGE_VERSIONS["viem"])
    output.add_dependency("ts-node", PACKAGE_VERSIONS["ts-node"], dev=True)

    output.add_doc("docs/erc721-nft.md", "ERC-721 NFT Collection", _nft_docs(config))

    context.logger.info(
        "Generated ERC721 Stylus NFT: %s (%s) on %s",
        config.collection_name,
        config.collection_symbol,
        config.network,
    )
    return output


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _crate_name(config: ERC721StylusConfig) -> str:
    return "-".join(config.collection_name.lower().split()) or "erc721"


def _cargo_toml(config: ERC721StylusConfig) -> str:
    return f"""[package]
name = "{_crate_name(config)}"
version = "0.1.0"
edition = "2021"

[dependencies]
alloy-primitives = "0.7"
alloy-sol-types = "0.7"
stylus-sdk = "0.6"

[features]
export-abi = ["stylus-sdk/export-abi"]

[lib]
crate-type = ["lib", "cdylib"]
"""


def _contract_source(config: ERC721StylusConfig) -> str:
    features = set(config.features)
    burn = """
    pub fn burn(&mut self, token_id: U256) -> Result<(), Vec<u8>> {
        self.erc721._burn(token_id)
    }
""" if "burnable" in features else ""
    mint = """
    pub fn mint(&mut self, to: Address) -> Result<U256, Vec<u8>> {
        self.only_owner()?;
        let token_id = self.total_supply.get();
        self.erc721._mint(to, token_id)?;
        self.total_supply.set(token_id + U256::from(1));
        Ok(token_id)
    }
""" if "mintable" in features else ""
    return f"""//! {config.collection_name} ({config.collection_symbol})
#![cfg_attr(not(feature = "export-abi"), no_main)]
extern crate alloc;

use alloc::{{string::String, vec::Vec}};
use stylus_sdk::{{alloy_primitives::{{Address, U256}}, msg, prelude::*}};

sol_storage! {{
    #[entrypoint]
    pub struct Collection {{
        #[borrow]
        Erc721 erc721;
        address owner;
        uint256 total_supply;
    }}
}}

#[public]
#[inherit(Erc721)]
impl Collection {{
    pub fn name(&self) -> String {{
        String::from("{config.collection_name}")
    }}

    pub fn symbol(&self) -> String {{
        String::from("{config.collection_symbol}")
    }}

    pub fn base_uri(&self) -> String {{
        String::from("{config.base_uri}")
    }}
{mint}{burn}
    fn only_owner(&self) -> Result<(), Vec<u8>> {{
        if msg::sender() != self.owner.get() {{
            return Err(b"not owner".to_vec());
        }}
        Ok(())
    }}
}}
"""


def _cn() -> str:
    return """export function cn(...classes: Array<string | false | null | undefined>): string {
  return classes.filter(Boolean).join(' ');
}
"""


def _deploy_script(config: ERC721StylusConfig) -> str:
    return f"""/**
 * ERC-721 NFT Deployment Script
 *
 * Usage: ts-node scripts/deploy-erc721.ts
 */

async function main() {{
  const privateKey = process.env.PRIVATE_KEY;
  const apiUrl = process.env.ERC721_DEPLOYMENT_API_URL || 'http://localhost:4001';

  if (!privateKey) {{
    throw new Error('PRIVATE_KEY environment variable is required');
  }}

  const response = await fetch(`${{apiUrl}}/deploy`, {{
    method: 'POST',
    headers: {{ 'Content-Type': 'application/json' }},
    body: JSON.stringify({{
      name: '{config.collection_name}',
      symbol: '{config.collection_symbol}',
      baseUri: '{config.base_uri}',
      rpcEndpoint: '{RPC_ENDPOINTS[config.network]}',
      privateKey,
    }}),
  }});
  const result = await response.json();

  console.log('Contract Address:', result.collectionAddress);
  console.log(`NEXT_PUBLIC_NFT_ADDRESS=${{result.collectionAddress}}`);
}}

main().catch(console.error);
"""


def _nft_lib(config: ERC721StylusConfig) -> str:
    return f"""import {{ createPublicClient, http, parseAbi, type Address }} from 'viem';

const NFT_ADDRESS = process.env.NEXT_PUBLIC_NFT_ADDRESS as Address;
const RPC_ENDPOINT = '{RPC_ENDPOINTS[config.network]}';

const abi = parseAbi([
  'function name() view returns (string)',
  'function symbol() view returns (string)',
  'function balanceOf(address owner) view returns (uint256)',
  'function ownerOf(uint256 tokenId) view returns (address)',
]);

const client = createPublicClient({{ transport: http(RPC_ENDPOINT) }});

export async function fetchBalance(account: Address): Promise<bigint> {{
  return client.readContract({{ address: NFT_ADDRESS, abi, functionName: 'balanceOf', args: [account] }});
}}

export async function fetchOwner(tokenId: bigint): Promise<Address> {{
  return client.readContract({{ address: NFT_ADDRESS, abi, functionName: 'ownerOf', args: [tokenId] }});
}}

export const NFT_CONFIG = {{
  name: '{config.collection_name}',
  symbol: '{config.collection_symbol}',
  baseUri: '{config.base_uri}',
  network: '{config.network}',
  features: {json.dumps(list(config.features))},
}} as const;
"""


def _nft_panel(config: ERC721StylusConfig) -> str:
    return f"""'use client';

import {{ useAccount }} from 'wagmi';
import {{ NFT_CONFIG }} from '@/lib/erc721-nft';

const NFT_ADDRESS = process.env.NEXT_PUBLIC_NFT_ADDRESS;

export function ERC721NFTPanel() {{
  const {{ address }} = useAccount();

  if (!NFT_ADDRESS) {{
    return (
      <p className="text-sm text-yellow-400">
        NFT collection not deployed yet. Run <code>pnpm deploy:erc721</code> to deploy.
      </p>
    );
  }}

  return (
    <div className="space-y-2 rounded-lg bg-gray-800 p-4">
      <h3 className="text-lg font-semibold">{{NFT_CONFIG.name}} ({{NFT_CONFIG.symbol}})</h3>
      <p className="font-mono text-xs">{{NFT_ADDRESS}}</p>
      <p className="text-sm">Connected: {{address ?? 'not connected'}}</p>
    </div>
  );
}}
"""


def _nft_docs(config: ERC721StylusConfig) -> str:
    network = "Arbitrum One" if config.network == "arbitrum" else "Arbitrum Sepolia"
    feature_lines = "\n".join(f"- **{f}**: Enabled" for f in config.features)
    return f"""An ERC-721 NFT collection for {network} using Stylus.

## Collection Details

- **Name:** {config.collection_name}
- **Symbol:** {config.collection_symbol}
- **Base URI:** {config.base_uri}
- **Network:** {config.network}

## Deployment

Run `pnpm deploy:erc721` and copy the printed address into `NEXT_PUBLIC_NFT_ADDRESS`.

## Contract Features

{feature_lines}
"""
