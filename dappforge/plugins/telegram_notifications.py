"""
Telegram notifications plugin: send-only alerts through a grammY bot.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from dappforge.models.blueprint import BlueprintNode
from dappforge.models.codegen import CodegenOutput
from dappforge.models.context import ExecutionContext
from dappforge.models.node_registry import PluginMetadata, PluginPort, node_plugin
from dappforge.plugins.common import PACKAGE_VERSIONS, NodeConfig

NotificationType = Literal[
    "transaction",
    "price-alert",
    "whale-alert",
    "nft-activity",
    "defi-position",
    "governance",
    "contract-event",
    "custom",
]

LIB_DIR = "src/lib/telegram"


class TelegramNotifyConfig(NodeConfig):
    notification_types: list[NotificationType] = Field(default_factory=lambda: ["transaction"])
    template_format: Literal["HTML", "Markdown", "MarkdownV2"] = "HTML"


@node_plugin(
    metadata=PluginMetadata(
        id="telegram-notifications",
        name="Telegram Notifications",
        description="Send-only Telegram integration for alerts and updates",
        category="telegram",
        tags=("telegram", "notifications", "alerts"),
    ),
    config_schema=TelegramNotifyConfig,
    ports=[
        PluginPort(id="notify-out", name="Notifications", direction="output", data_type="config"),
    ],
)
def telegram_notifications(node: BlueprintNode, context: ExecutionContext) -> CodegenOutput:
    config: TelegramNotifyConfig = context.config
    output = CodegenOutput()

    output.add_file(f"{LIB_DIR}/notify-service.ts", _notify_service(config))
    output.add_file(f"{LIB_DIR}/templates.ts", _templates(config))
    output.add_file(f"{LIB_DIR}/bot-client.ts", _bot_client())
    output.add_file(f"{LIB_DIR}/types.ts", _types(config))

    output.add_env_var("TELEGRAM_BOT_TOKEN", "Bot token from @BotFather", required=True, secret=True)
    output.add_dependency("grammy", PACKAGE_VERSIONS["grammy"])

    context.logger.info("Generated Telegram notifications for %s", ", ".join(config.notification_types))
    return output


def _notify_service(config: TelegramNotifyConfig) -> str:
    return f"""import {{ telegramBot }} from './bot-client';
import {{ getTemplate }} from './templates';
import type {{ NotificationPayload }} from './types';

export async function sendNotification(chatId: string | number, payload: NotificationPayload) {{
  const text = getTemplate(payload.type, payload.data);
  try {{
    await telegramBot.api.sendMessage(chatId, text, {{ parse_mode: '{config.template_format}' }});
    return {{ success: true }};
  }} catch (error) {{
    console.error('Failed to send Telegram notification:', error);
    return {{ success: false, error }};
  }}
}}
"""


def _templates(config: TelegramNotifyConfig) -> str:
    cases = []
    if "transaction" in config.notification_types:
        cases.append("    case 'transaction':\n      return `New transaction\\nHash: ${data.hash}\\nValue: ${data.value} ETH`;")
    if "price-alert" in config.notification_types:
        cases.append("    case 'price-alert':\n      return `Price alert\\nAsset: ${data.symbol}\\nPrice: ${data.price}`;")
    body = "\n".join(cases)
    return f"""import type {{ NotificationType }} from './types';

export function getTemplate(type: NotificationType, data: any): string {{
  switch (type) {{
{body}
    default:
      return data.message || 'New notification';
  }}
}}
"""


def _bot_client() -> str:
    return """import { Bot } from 'grammy';

const token = process.env.TELEGRAM_BOT_TOKEN;
if (!token) throw new Error('TELEGRAM_BOT_TOKEN is not defined');

export const telegramBot = new Bot(token);
"""


def _types(config: TelegramNotifyConfig) -> str:
    union = "\n".join(f"  | '{t}'" for t in config.notification_types if t != "custom")
    return f"""export type NotificationType =
{union}
  | 'custom';

export interface NotificationPayload {{
  type: NotificationType;
  data: any;
}}
"""
