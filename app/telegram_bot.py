"""
Telegram bot that users talk to.

It carries the command surface (login, keywords, character limit,
notification destinations, statistics) and is also the sender used for
keyword match notifications.
"""

import logging
from typing import Optional

from telegram import BotCommand, Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from app.bot import auth_handlers, command_handlers
from app.core.config import settings

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    ("start", "🏠 Start"),
    ("help", "ℹ️ Help"),
    ("login", "🔑 Login with your phone number"),
    ("logout", "🚪 Logout"),
    ("addkeyword", "➕ Add a keyword"),
    ("removekeyword", "➖ Remove a keyword"),
    ("listkeywords", "📝 List keywords"),
    ("setlimit", "📏 Set the character limit"),
    ("addgroup", "🔔 Add a notification group"),
    ("removegroup", "🔕 Remove a notification group"),
    ("listgroups", "📋 List notification groups"),
    ("setgroups", "👥 Replace notification groups"),
    ("setnotification", "💬 Set the notification chat"),
    ("status", "📊 Status"),
    ("stats", "📈 Statistics"),
]


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log handler errors and tell the user something went wrong"""
    logger.error("Error while handling update: %s", context.error)
    if isinstance(update, Update) and update.effective_chat:
        try:
            await update.effective_chat.send_message("An unexpected error occurred. Please try again.")
        except Exception as e:
            logger.error("Failed to report error to user: %s", e)


class TelegramBot:
    """python-telegram-bot application wrapper"""

    def __init__(self, token: Optional[str] = None):
        self.application: Optional[Application] = None
        self.bot_token = token or settings.TELEGRAM_BOT_TOKEN

    def setup_handlers(self):
        """Setup bot handlers"""
        app = self.application
        app.add_handler(CommandHandler("start", command_handlers.start_command))
        app.add_handler(CommandHandler("help", command_handlers.help_command))
        app.add_handler(CommandHandler("login", auth_handlers.login_command))
        app.add_handler(CommandHandler("cancel", auth_handlers.cancel_command))
        app.add_handler(CommandHandler("logout", auth_handlers.logout_command))
        app.add_handler(CommandHandler("addkeyword", command_handlers.add_keyword_command))
        app.add_handler(CommandHandler("removekeyword", command_handlers.remove_keyword_command))
        app.add_handler(CommandHandler("listkeywords", command_handlers.list_keywords_command))
        app.add_handler(CommandHandler("setlimit", command_handlers.set_limit_command))
        app.add_handler(CommandHandler("addgroup", command_handlers.add_group_command))
        app.add_handler(CommandHandler("removegroup", command_handlers.remove_group_command))
        app.add_handler(CommandHandler("listgroups", command_handlers.list_groups_command))
        app.add_handler(CommandHandler("setgroups", command_handlers.set_groups_command))
        app.add_handler(CommandHandler("setnotification", command_handlers.set_notification_command))
        app.add_handler(CommandHandler("status", command_handlers.status_command))
        app.add_handler(CommandHandler("stats", command_handlers.stats_command))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, auth_handlers.handle_message))
        app.add_error_handler(error_handler)

    async def setup_commands_menu(self):
        """Setup bot commands menu"""
        commands = [BotCommand(command, description) for command, description in BOT_COMMANDS]
        await self.application.bot.set_my_commands(commands)
        logger.info("Bot commands menu set up successfully")

    async def start_bot(self):
        """Start the bot"""
        try:
            if not self.bot_token:
                raise ValueError("Bot token is not configured")
            self.application = Application.builder().token(self.bot_token).build()
            self.setup_handlers()

            logger.info("Starting Telegram bot...")
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()

            await self.setup_commands_menu()

            logger.info("Telegram bot started successfully")
        except Exception as e:
            logger.error("Failed to start Telegram bot: %s", e)
            raise

    async def send_message(self, chat_id: int, text: str, parse_mode: Optional[str] = None) -> bool:
        """Send a message through the running application; False when the bot is not started"""
        if not self.application:
            logger.warning("Bot application is not running, cannot send message to %s", chat_id)
            return False
        await self.application.bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)
        return True

    async def stop_bot(self):
        """Stop the bot"""
        if self.application:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()
            self.application = None
            logger.info("Telegram bot stopped")


# Global bot instance
telegram_bot = TelegramBot()
