from __future__ import annotations

from telegram import BotCommand
from telegram.ext import Application, CallbackQueryHandler, MessageHandler, filters
from telegram.request import HTTPXRequest

from .config import Config, logger
from .commands import subject_button, text_cmd
from .disclosure import DisclosureRegistry, HomeworkDisclosure
from .jobs import DigestJobs, register_jobs
from .sheets import SheetsClient
from .storage import HomeworkStore

# New text messages only; edits and channel posts are not commands
COMMAND_FILTER = filters.UpdateType.MESSAGE & filters.TEXT


async def startup_health_check(store: HomeworkStore) -> bool:
    """Check that the spreadsheet is reachable and has the expected sheets"""
    logger.info("🏥 Running startup health check...")
    cfg = store.config
    try:
        titles = await store.client.worksheet_titles()
        missing = [t for t in (cfg.MAIN_SHEET, cfg.SCHEDULE_SHEET, cfg.TECHNICAL_SHEET) if t not in titles]
        if missing:
            logger.error(f"❌ Spreadsheet is missing sheets: {', '.join(missing)}")
            return False
        await store.refresh()
        logger.info(f"✅ Spreadsheet reachable, week {store.week_number()} (parity {store.rotation_parity()})")
        return True
    except Exception as e:
        logger.error(f"❌ Spreadsheet health check failed: {e}")
        return False


def build_application(config: Config) -> Application:
    client = SheetsClient(
        config.GOOGLE_SERVICE_ACCOUNT_EMAIL,
        config.GOOGLE_PRIVATE_KEY,
        config.GOOGLE_SHEETS_ID,
    )
    store = HomeworkStore(client, config)

    # Configure request with longer timeout to prevent startup failures
    request = HTTPXRequest(
        connection_pool_size=8,
        connect_timeout=30.0,
        read_timeout=30.0,
        write_timeout=30.0,
        pool_timeout=30.0,
    )

    app = Application.builder().token(config.BOT_TOKEN).request(request).build()

    registry = DisclosureRegistry(config.IDLE_TIMEOUT_SECS)
    jobs = DigestJobs(store, config)
    app.bot_data["config"] = config
    app.bot_data["store"] = store
    app.bot_data["jobs"] = jobs
    app.bot_data["disclosure"] = HomeworkDisclosure(app.bot, store, config, registry)

    commands = [
        BotCommand("hw", "Show homework for a subject"),
        BotCommand("homework", "Show homework for a subject"),
        BotCommand("update", "Reload the spreadsheet"),
    ]

    async def post_init(application: Application) -> None:
        if not await startup_health_check(store):
            raise RuntimeError("Spreadsheet health check failed, not starting")
        try:
            logger.info("🔧 Setting up bot commands...")
            await application.bot.set_my_commands(commands)
            logger.info("✅ Bot commands configured successfully")
        except Exception as e:
            logger.error(f"❌ Failed to set bot commands: {e}")
            logger.warning("⚠️ Bot will continue but commands may not be visible in Telegram")
        register_jobs(application.job_queue, jobs, config)

    app.post_init = post_init

    app.add_handler(MessageHandler(COMMAND_FILTER, text_cmd))
    app.add_handler(CallbackQueryHandler(subject_button))
    return app


def main():
    config = Config.from_env()
    try:
        config.validate_config()
    except ValueError as e:
        raise SystemExit(f"❌ {e}. Check your .env file.")

    logger.info("Starting homework bot")
    app = build_application(config)
    app.run_polling(drop_pending_updates=True)
