"""Command handlers: keywords, character limit, notification destinations, status and stats"""

import logging
from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from app.core.config import settings
from app.exceptions import InvalidInputError
from app.models.user import User
from app.services.keyword_match_service import keyword_match_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_TEXT = "Please login first using /login"
GENERIC_ERROR_TEXT = "An error occurred while {action}. Please try again."

WELCOME_TEXT = (
    "🤖 Welcome to Telegram Keyword Search Bot!\n\n"
    "This bot monitors your Telegram chats for keywords and notifies you when they're mentioned.\n\n"
    "Commands:\n"
    "/login - Login with your phone number\n"
    "/logout - Logout from the bot\n"
    "/addkeyword <keyword> - Add a keyword to monitor\n"
    "/removekeyword <keyword> - Remove a keyword\n"
    "/listkeywords - List your monitored keywords\n"
    "/setlimit <1-1000> - Only match messages up to this many characters\n"
    "/addgroup <chat_id> - Send alerts to a group or channel\n"
    "/removegroup <chat_id> - Stop sending alerts to a group\n"
    "/listgroups - List notification destinations\n"
    "/setgroups <chat_id> [chat_id ...] - Replace all destinations\n"
    "/setnotification <chat_id> - Send alerts to a single chat\n"
    "/status - Check your status\n"
    "/stats [days] - Keyword match statistics\n"
    "/help - Show this help message\n\n"
    "To get started, use /login to authenticate with your phone number."
)


def _argument_text(context: ContextTypes.DEFAULT_TYPE) -> str:
    return " ".join(context.args or []).strip()


async def _get_logged_in_user(update: Update) -> Optional[User]:
    """Return the sender's user record, replying with a login hint when not authenticated"""
    user = await user_service.get_user(update.effective_user.id)
    if user is None or not user.is_authenticated:
        await update.message.reply_text(LOGIN_REQUIRED_TEXT)
        return None
    return user


async def start_command(update: Update, _: ContextTypes.DEFAULT_TYPE):
    if not update.message:
        return
    await update.message.reply_text(WELCOME_TEXT)


async def help_command(update: Update, _: ContextTypes.DEFAULT_TYPE):
    if not update.message:
        return
    await update.message.reply_text(WELCOME_TEXT)


async def add_keyword_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    keyword = _argument_text(context)
    if not keyword:
        await update.message.reply_text("Please provide a keyword to add. Usage: /addkeyword <keyword>")
        return

    try:
        if not await _get_logged_in_user(update):
            return
        added = await user_service.add_keyword(update.effective_user.id, keyword)
        if added:
            await update.message.reply_text(f'Keyword "{keyword}" added successfully!')
        else:
            await update.message.reply_text(f'Keyword "{keyword}" is already in your list.')
    except InvalidInputError as e:
        await update.message.reply_text(e.message)
    except Exception as e:
        logger.error("Add keyword error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="adding the keyword"))


async def remove_keyword_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    keyword = _argument_text(context)
    if not keyword:
        await update.message.reply_text("Please provide a keyword to remove. Usage: /removekeyword <keyword>")
        return

    try:
        if not await _get_logged_in_user(update):
            return
        removed = await user_service.remove_keyword(update.effective_user.id, keyword)
        if removed:
            await update.message.reply_text(f'Keyword "{keyword}" removed successfully!')
        else:
            await update.message.reply_text(f'Keyword "{keyword}" was not found in your list.')
    except InvalidInputError as e:
        await update.message.reply_text(e.message)
    except Exception as e:
        logger.error("Remove keyword error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="removing the keyword"))


async def list_keywords_command(update: Update, _: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    try:
        user = await _get_logged_in_user(update)
        if not user:
            return
        if not user.keywords:
            await update.message.reply_text("You have no keywords to monitor. Use /addkeyword to add some.")
            return

        keywords_list = "\n".join(f"{index}. {keyword}" for index, keyword in enumerate(user.keywords, 1))
        await update.message.reply_text(f"Your monitored keywords:\n\n{keywords_list}")
    except Exception as e:
        logger.error("List keywords error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="fetching your keywords"))


async def set_limit_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    value = _argument_text(context)
    if not value:
        await update.message.reply_text("Please provide a character limit. Usage: /setlimit <1-1000>")
        return

    try:
        if not await _get_logged_in_user(update):
            return
        limit = await user_service.set_character_limit(update.effective_user.id, value)
        await update.message.reply_text(f"Character limit set to {limit}. Longer messages will be ignored.")
    except InvalidInputError as e:
        await update.message.reply_text(e.message)
    except Exception as e:
        logger.error("Set limit error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="setting the character limit"))


async def add_group_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    if not context.args:
        await update.message.reply_text("Please provide a chat ID. Usage: /addgroup <chat_id>")
        return

    try:
        if not await _get_logged_in_user(update):
            return
        added = await user_service.add_notification_group(update.effective_user.id, context.args[0])
        if added:
            await update.message.reply_text(f"Notification group {context.args[0]} added.")
        else:
            await update.message.reply_text(f"Group {context.args[0]} is already in your notification list.")
    except InvalidInputError as e:
        await update.message.reply_text(e.message)
    except Exception as e:
        logger.error("Add group error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="adding the notification group"))


async def remove_group_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    if not context.args:
        await update.message.reply_text("Please provide a chat ID. Usage: /removegroup <chat_id>")
        return

    try:
        if not await _get_logged_in_user(update):
            return
        removed = await user_service.remove_notification_group(update.effective_user.id, context.args[0])
        if removed:
            await update.message.reply_text(f"Notification group {context.args[0]} removed.")
        else:
            await update.message.reply_text(f"Group {context.args[0]} was not in your notification list.")
    except InvalidInputError as e:
        await update.message.reply_text(e.message)
    except Exception as e:
        logger.error("Remove group error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="removing the notification group"))


async def list_groups_command(update: Update, _: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    try:
        user = await _get_logged_in_user(update)
        if not user:
            return
        if not user.notification_groups:
            await update.message.reply_text(
                "No notification groups configured. Alerts are sent to you directly.\n"
                "Use /addgroup <chat_id> to add one."
            )
            return

        groups_list = "\n".join(f"{index}. {group_id}" for index, group_id in enumerate(user.notification_groups, 1))
        await update.message.reply_text(f"Your notification groups:\n\n{groups_list}")
    except Exception as e:
        logger.error("List groups error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="fetching your notification groups"))


async def set_groups_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    if not context.args:
        await update.message.reply_text("Please provide one or more chat IDs. Usage: /setgroups <chat_id> [chat_id ...]")
        return

    try:
        if not await _get_logged_in_user(update):
            return
        groups = await user_service.set_notification_groups(update.effective_user.id, context.args)
        await update.message.reply_text(
            "Notification groups set to: " + ", ".join(str(group_id) for group_id in groups)
        )
    except InvalidInputError as e:
        await update.message.reply_text(e.message)
    except Exception as e:
        logger.error("Set groups error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="setting notification groups"))


async def set_notification_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    if not context.args:
        await update.message.reply_text("Please provide a valid chat ID. Usage: /setnotification <chat_id>")
        return

    try:
        if not await _get_logged_in_user(update):
            return
        groups = await user_service.set_notification_chat(update.effective_user.id, context.args[0])
        await update.message.reply_text(f"Notification chat set to: {groups[0]}")
    except InvalidInputError as e:
        await update.message.reply_text(e.message)
    except Exception as e:
        logger.error("Set notification error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="setting notification chat"))


async def status_command(update: Update, _: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    try:
        user = await user_service.get_user(update.effective_user.id)
        if user is None:
            await update.message.reply_text("You are not registered. Use /login to get started.")
            return

        status = "✅ Authenticated" if user.is_authenticated else "❌ Not authenticated"
        if user.notification_groups:
            destinations = ", ".join(str(group_id) for group_id in user.notification_groups)
        else:
            destinations = "Direct messages"

        await update.message.reply_text(
            "📊 Your Status:\n"
            f"{status}\n"
            f"📝 Monitored keywords: {len(user.keywords)}\n"
            f"📏 Character limit: {user.character_limit}\n"
            f"🔔 Notifications: {destinations}\n\n"
            "Use /login to authenticate or /addkeyword to add keywords to monitor."
        )
    except Exception as e:
        logger.error("Status error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="checking your status"))


async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    days = settings.STATS_DEFAULT_DAYS
    if context.args:
        try:
            days = int(context.args[0])
            if days < 1:
                raise ValueError(days)
        except ValueError:
            await update.message.reply_text("Days must be a positive whole number. Usage: /stats [days]")
            return

    try:
        user = await _get_logged_in_user(update)
        if not user:
            return

        stats = await keyword_match_service.aggregate_stats(user.user_id, days)
        if stats.total_matches == 0:
            await update.message.reply_text(f"No keyword matches in the last {days} days.")
            return

        top_keywords = "\n".join(
            f"{index}. {item.keyword}: {item.count}" for index, item in enumerate(stats.top_keywords, 1)
        )
        await update.message.reply_text(
            f"📈 Keyword statistics (last {days} days)\n\n"
            f"Total matches: {stats.total_matches}\n"
            f"Average message length: {stats.average_message_length} chars\n\n"
            f"Top keywords:\n{top_keywords}"
        )
    except Exception as e:
        logger.error("Stats error: %s", e)
        await update.message.reply_text(GENERIC_ERROR_TEXT.format(action="fetching your statistics"))
