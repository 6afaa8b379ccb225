"""
Built-in plugin catalog, registered into the default registry.
"""

from dappforge.plugins.erc721_stylus import erc721_stylus
from dappforge.plugins.frontend_scaffold import frontend_scaffold
from dappforge.plugins.repo_quality_gates import repo_quality_gates
from dappforge.plugins.telegram_commands import telegram_commands
from dappforge.plugins.telegram_notifications import telegram_notifications
from dappforge.plugins.wallet_auth import wallet_auth

BUILTIN_PLUGINS = (
    frontend_scaffold,
    wallet_auth,
    erc721_stylus,
    telegram_notifications,
    telegram_commands,
    repo_quality_gates,
)
