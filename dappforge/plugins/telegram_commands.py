"""
Telegram commands plugin: interactive command handling via webhooks or polling.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from dappforge.models.blueprint import BlueprintNode
from dappforge.models.codegen import CodegenOutput
from dappforge.models.context import ExecutionContext
from dappforge.models.node_registry import PluginMetadata, PluginPort, node_plugin
from dappforge.plugins.common import PACKAGE_VERSIONS, NodeConfig

BotCommand = Literal["start", "help", "balance", "wallet", "subscribe", "unsubscribe", "settings", "status"]

LIB_DIR = "src/lib/telegram"


class TelegramCommandsConfig(NodeConfig):
    framework: Literal["grammy", "telegraf"] = "grammy"
    delivery_method: Literal["webhook", "polling"] = "webhook"
    commands: list[BotCommand] = Field(default_factory=lambda: ["start", "help"], min_length=1)
    rate_limit_enabled: bool = True
    chat_flow_enabled: bool = False


@node_plugin(
    metadata=PluginMetadata(
        id="telegram-commands",
        name="Telegram Commands",
        description="Interactive Telegram command handling via webhooks or polling",
        category="telegram",
        tags=("telegram", "commands", "webhooks", "grammy"),
    ),
    config_schema=TelegramCommandsConfig,
    ports=[
        PluginPort(id="commands-out", name="Commands", direction="output", data_type="config"),
    ],
)
def telegram_commands(node: BlueprintNode, context: ExecutionContext) -> CodegenOutput:
    config: TelegramCommandsConfig = context.config
    output = CodegenOutput()

    # Shared gateway, also written by the notifications plugin
    output.add_file(f"{LIB_DIR}/bot-client.ts", _bot_client(config))
    output.add_file(f"{LIB_DIR}/composers/commands.ts", _commands(config))

    if config.delivery_method == "webhook":
        output.add_file("telegram/webhook/route.ts", _webhook_handler(config), "backend-routes")
        output.add_env_var(
            "TELEGRAM_WEBHOOK_SECRET",
            "Secret for webhook verification",
            required=True,
            secret=True,
        )
    else:
        output.add_file("telegram-bot.ts", _polling_script(config), "contract-scripts")
        output.add_script("bot:start", "ts-node scripts/telegram-bot.ts", "Start the bot in polling mode")
        output.add_dependency("ts-node", PACKAGE_VERSIONS["ts-node"], dev=True)

    output.add_env_var("TELEGRAM_BOT_TOKEN", "Bot token from @BotFather", required=True, secret=True)
    output.add_dependency(config.framework, PACKAGE_VERSIONS[config.framework])

    context.logger.info(
        "Generated Telegram commands (%s, %s): %s",
        config.framework,
        config.delivery_method,
        ", ".join(config.commands),
    )
    return output


def _bot_client(config: TelegramCommandsConfig) -> str:
    if config.framework == "telegraf":
        return """import { Telegraf } from 'telegraf';
import { registerCommands } from './composers/commands';

const token = process.env.TELEGRAM_BOT_TOKEN;
if (!token) throw new Error('TELEGRAM_BOT_TOKEN is not defined');

export const telegramBot = new Telegraf(token);

registerCommands(telegramBot);
"""
    return """import { Bot } from 'grammy';
import { commandsComposer } from './composers/commands';

const token = process.env.TELEGRAM_BOT_TOKEN;
if (!token) throw new Error('TELEGRAM_BOT_TOKEN is not defined');

export const telegramBot = new Bot(token);

telegramBot.use(commandsComposer);
"""


def _commands(config: TelegramCommandsConfig) -> str:
    if config.framework == "telegraf":
        handlers = "\n".join(
            f"  bot.command('{cmd}', (ctx) => ctx.reply('Handled /{cmd} command!'));"
            for cmd in config.commands
        )
        return f"""import type {{ Telegraf }} from 'telegraf';

export function registerCommands(bot: Telegraf) {{
{handlers}
}}
"""

    handlers = "\n\n".join(
        f"commandsComposer.command('{cmd}', async (ctx) => {{\n  await ctx.reply('Handled /{cmd} command!');\n}});"
        for cmd in config.commands
    )
    chat_flow = """

commandsComposer.on('message:text', async (ctx) => {
  if (ctx.message.text.startsWith('/')) return;
  await ctx.reply(`You said: ${ctx.message.text}`);
});""" if config.chat_flow_enabled else ""
    return f"""import {{ Composer }} from 'grammy';

export const commandsComposer = new Composer();

{handlers}{chat_flow}
"""


def _webhook_handler(config: TelegramCommandsConfig) -> str:
    if config.framework == "telegraf":
        return """import { NextRequest, NextResponse } from 'next/server';
import { telegramBot } from '@/lib/telegram/bot-client';

export async function POST(req: NextRequest) {
  if (req.headers.get('x-telegram-bot-api-secret-token') !== process.env.TELEGRAM_WEBHOOK_SECRET) {
    return NextResponse.json({ error: 'Unauthorized' }, { status: 401 });
  }
  await telegramBot.handleUpdate(await req.json());
  return NextResponse.json({ ok: true });
}
"""
    return """import { webhookCallback } from 'grammy';
import { telegramBot } from '@/lib/telegram/bot-client';

export const POST = webhookCallback(telegramBot, 'std/http', {
  secretToken: process.env.TELEGRAM_WEBHOOK_SECRET,
});
"""


def _polling_script(config: TelegramCommandsConfig) -> str:
    start = "launch" if config.framework == "telegraf" else "start"
    return f"""import {{ telegramBot }} from '../src/lib/telegram/bot-client';

async function main() {{
  console.log('Starting Telegram bot in polling mode...');
  await telegramBot.{start}();
}}

main().catch(console.error);
"""
