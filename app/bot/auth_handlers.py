"""Login, logout and the text replies that drive an in-progress login"""

import logging

from telegram import Update
from telegram.ext import ContextTypes

from app.exceptions import AuthenticationError, InvalidPhoneNumberError, PasswordRequiredError
from app.services import get_telegram_service
from app.services.auth_service import AuthFlow, AuthStep, auth_service

logger = logging.getLogger(__name__)

AUTH_FLOW_KEY = "auth_flow"

PHONE_PROMPT_TEXT = (
    "Please send your phone number in international format (e.g., +1234567890).\n\n"
    "Use /cancel to abort."
)
CODE_PROMPT_TEXT = (
    "📱 A login code has been sent to your Telegram app.\n\n"
    "Please send the code with spaces between the digits (e.g., 1 2 3 4 5) "
    "so Telegram does not invalidate it."
)
PASSWORD_PROMPT_TEXT = "🔐 Your account has two-step verification enabled. Please send your password."
LOGIN_SUCCESS_TEXT = (
    "✅ Successfully logged in!\n\n"
    "You can now add keywords to monitor using /addkeyword <keyword>"
)


async def _drop_flow(context: ContextTypes.DEFAULT_TYPE) -> None:
    flow = context.user_data.pop(AUTH_FLOW_KEY, None)
    if flow is not None:
        await auth_service.cancel(flow)


async def login_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    await _drop_flow(context)
    context.user_data[AUTH_FLOW_KEY] = auth_service.begin(update.effective_user.id)
    await update.message.reply_text(PHONE_PROMPT_TEXT)


async def cancel_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message:
        return

    if AUTH_FLOW_KEY not in context.user_data:
        await update.message.reply_text("There is no login in progress.")
        return

    await _drop_flow(context)
    await update.message.reply_text("Login cancelled.")


async def logout_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message or not update.effective_user:
        return

    try:
        await _drop_flow(context)
        if await auth_service.logout(update.effective_user.id):
            await update.message.reply_text("Successfully logged out!")
        else:
            await update.message.reply_text("You are not logged in.")
    except Exception as e:
        logger.error("Logout error: %s", e)
        await update.message.reply_text("An error occurred during logout. Please try again.")


async def _on_authenticated(update: Update, context: ContextTypes.DEFAULT_TYPE, session_string: str) -> None:
    context.user_data.pop(AUTH_FLOW_KEY, None)
    await update.message.reply_text(LOGIN_SUCCESS_TEXT)
    await get_telegram_service().ensure_monitoring(session_string)


async def _handle_phone(update: Update, context: ContextTypes.DEFAULT_TYPE, flow: AuthFlow, text: str) -> None:
    try:
        await auth_service.start_authentication(flow, text)
    except InvalidPhoneNumberError as e:
        await update.message.reply_text(e.message)
        return
    except AuthenticationError as e:
        context.user_data.pop(AUTH_FLOW_KEY, None)
        await update.message.reply_text(e.message)
        return
    await update.message.reply_text(CODE_PROMPT_TEXT)


async def _handle_code(update: Update, context: ContextTypes.DEFAULT_TYPE, flow: AuthFlow, text: str) -> None:
    try:
        session_string = await auth_service.submit_code(flow, text)
    except PasswordRequiredError:
        await update.message.reply_text(PASSWORD_PROMPT_TEXT)
        return
    except AuthenticationError as e:
        if flow.step == AuthStep.DONE:
            context.user_data.pop(AUTH_FLOW_KEY, None)
        await update.message.reply_text(e.message)
        return
    await _on_authenticated(update, context, session_string)


async def _handle_password(update: Update, context: ContextTypes.DEFAULT_TYPE, flow: AuthFlow, text: str) -> None:
    try:
        await update.message.delete()
    except Exception as e:
        logger.debug("Could not delete password message: %s", e)

    try:
        session_string = await auth_service.submit_password(flow, text)
    except AuthenticationError as e:
        if flow.step == AuthStep.DONE:
            context.user_data.pop(AUTH_FLOW_KEY, None)
        await update.effective_chat.send_message(e.message)
        return
    context.user_data.pop(AUTH_FLOW_KEY, None)
    await update.effective_chat.send_message(LOGIN_SUCCESS_TEXT)
    await get_telegram_service().ensure_monitoring(session_string)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Route plain text to the current login step; other text is ignored"""
    if not update.message or not update.message.text:
        return

    flow = context.user_data.get(AUTH_FLOW_KEY)
    if flow is None:
        return

    text = update.message.text.strip()
    try:
        if flow.step == AuthStep.PHONE:
            await _handle_phone(update, context, flow, text)
        elif flow.step == AuthStep.CODE:
            await _handle_code(update, context, flow, text)
        elif flow.step == AuthStep.PASSWORD:
            await _handle_password(update, context, flow, text)
        else:
            context.user_data.pop(AUTH_FLOW_KEY, None)
    except Exception as e:
        logger.error("Auth flow error for user %s: %s", flow.telegram_id, e)
        await _drop_flow(context)
        await update.effective_chat.send_message("An error occurred during authentication. Please try /login again.")
