"""
Main entry point for SplitPal Telegram bot.
"""

import logging
import asyncio
import signal
from telegram import Update
from telegram.ext import (
    Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters, ContextTypes,
)

from .. import config
from ..utils.errors import ERROR_MESSAGES
from .handlers import (
    start_command, track_activity, help_command, test_command,
    add_command, edit_command, delete_command, templates_command, template_shortcut,
    summary_command, balance_command, settle_command, history_command, personal_command, budget_command,
    view_balance_callback, view_history_callback, help_callback,
    add_expense_help_callback, create_template_help_callback, budget_help_callback, close_callback,
    use_template_callback, create_template_callback,
)
from .keyboards import get_main_menu_commands

logger = logging.getLogger(__name__)

# Handler groups: tracking runs before commands, shortcuts after them
TRACKING_GROUP = -1
SHORTCUT_GROUP = 1


def setup_logging():
    """Configure logging from LOG_LEVEL, or DEBUG when DEBUG is on."""
    level = logging.DEBUG if config.DEBUG else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=level
    )
    # httpx logs every request URL, which contains the bot token
    logging.getLogger('httpx').setLevel(logging.WARNING)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log errors that escape handlers and tell the user something went wrong."""
    logger.error(f"Unhandled error while processing update: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(ERROR_MESSAGES['DATABASE_ERROR'])
        except Exception as e:
            logger.error(f"Could not send error notice: {e}")


class SplitPalBot:
    """
    Telegram Bot interface for SplitPal application.
    """

    def __init__(self):
        config.validate_config()
        self.token = config.TELEGRAM_BOT_TOKEN

        # Initialize bot application
        self.application = Application.builder().token(self.token).build()
        self._setup_handlers()

        logger.info("SplitPal Telegram Bot initialized")

    def _setup_handlers(self):
        """Setup all command, callback and message handlers."""
        app = self.application

        # Membership tracking for every group message
        app.add_handler(
            MessageHandler(filters.ChatType.GROUPS & ~filters.StatusUpdate.ALL, track_activity),
            group=TRACKING_GROUP
        )

        # Core command handlers
        app.add_handler(CommandHandler("start", start_command))
        app.add_handler(CommandHandler("help", help_command))
        app.add_handler(CommandHandler("test", test_command))
        app.add_handler(CommandHandler("add", add_command))
        app.add_handler(CommandHandler("edit", edit_command))
        app.add_handler(CommandHandler("delete", delete_command))
        app.add_handler(CommandHandler("templates", templates_command))
        app.add_handler(CommandHandler("summary", summary_command))
        app.add_handler(CommandHandler("balance", balance_command))
        app.add_handler(CommandHandler("settle", settle_command))
        app.add_handler(CommandHandler("history", history_command))
        app.add_handler(CommandHandler("personal", personal_command))
        app.add_handler(CommandHandler("budget", budget_command))

        # Inline button callbacks
        app.add_handler(CallbackQueryHandler(view_balance_callback, pattern=r'^view_balance$'))
        app.add_handler(CallbackQueryHandler(view_history_callback, pattern=r'^view_history$'))
        app.add_handler(CallbackQueryHandler(help_callback, pattern=r'^help$'))
        app.add_handler(CallbackQueryHandler(add_expense_help_callback, pattern=r'^add_expense_help$'))
        app.add_handler(CallbackQueryHandler(create_template_help_callback, pattern=r'^create_template_help$'))
        app.add_handler(CallbackQueryHandler(budget_help_callback, pattern=r'^budget_help$'))
        app.add_handler(CallbackQueryHandler(close_callback, pattern=r'^close$'))
        app.add_handler(CallbackQueryHandler(use_template_callback, pattern=r'^use_template:'))
        app.add_handler(CallbackQueryHandler(create_template_callback, pattern=r'^create_template:'))

        # Template shortcuts are any other /command
        app.add_handler(MessageHandler(filters.COMMAND, template_shortcut), group=SHORTCUT_GROUP)

        app.add_error_handler(error_handler)

    async def setup_bot_commands(self):
        """Setup bot commands menu."""
        commands = get_main_menu_commands()
        await self.application.bot.set_my_commands(commands)

    async def run(self):
        """Run the bot."""
        try:
            # Start bot
            logger.info("Starting SplitPal Telegram Bot...")
            await self.application.initialize()
            await self.setup_bot_commands()
            await self.application.start()
            await self.application.updater.start_polling()

            logger.info("SplitPal Telegram Bot is running!")

            # Keep running until SIGINT/SIGTERM
            stop_signal = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, stop_signal.set)
                except (NotImplementedError, RuntimeError):
                    pass

            await stop_signal.wait()

        except Exception as e:
            error_message = str(e)
            if "Conflict: terminated by other getUpdates request" in error_message:
                logger.error("❌ MULTIPLE BOT INSTANCES DETECTED!")
                logger.error("Another process is polling with the same bot token.")
                logger.error("Stop the other instance (or container), wait 30 seconds, then restart.")
                raise ValueError("Multiple bot instances detected. Please stop other instances first.")
            else:
                logger.error(f"Bot startup error: {e}")
                raise
        finally:
            logger.info("Stopping SplitPal Telegram Bot...")
            try:
                if self.application.updater.running:
                    await self.application.updater.stop()
                if self.application.running:
                    await self.application.stop()
                await self.application.shutdown()
            except Exception as e:
                logger.error(f"Error during shutdown: {e}")


def main():
    """Main entry point for Telegram Bot."""
    setup_logging()
    try:
        # Initialize and run bot
        bot = SplitPalBot()
        asyncio.run(bot.run())

    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.error(f"Fatal bot error: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
