import logging

from config import TG_BOT_TOKEN, PROXY_URL, ALLOWED_USER_ID

from telegram import Update
from telegram.error import BadRequest, Forbidden, TimedOut, NetworkError
from telegram.ext import (
    ApplicationBuilder,
    ApplicationHandlerStop,
    CommandHandler,
    MessageHandler,
    ConversationHandler,
    CallbackQueryHandler,
    ContextTypes,
    TypeHandler,
    filters,
)

from database.database import init_db
import handlers.items as hand_item
import handlers.start as hand_start
import handlers.study as hand_study
import handlers.stats as hand_stats
import handlers.decks_menu as hand_decks_menu
import handlers.help as hand_help
import handlers.manage as hand_manage
from utils.constants import AddItemState, StudyState


def main() -> None:
    logging.info("Running main")

    builder = ApplicationBuilder().token(TG_BOT_TOKEN)
    if PROXY_URL:
        builder = builder.proxy(PROXY_URL).get_updates_proxy(PROXY_URL)
    application = builder.build()

    if ALLOWED_USER_ID is not None:
        # Runs before every other handler group
        application.add_handler(TypeHandler(Update, gatekeeper), group=-1)

    # Add item conversation
    add_item_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(hand_item.add_item_entry, pattern='^add_item$'),
            CommandHandler('add', hand_item.add_command),
        ],
        per_message=False,

        states={
            AddItemState.AWAITING_CONTENT: [
                CallbackQueryHandler(hand_item.cancel, pattern='^main_menu$'),
                MessageHandler(filters.TEXT & ~filters.COMMAND, hand_item.get_content),
            ],

            AddItemState.AWAITING_KIND: [
                CallbackQueryHandler(hand_item.set_kind, pattern=r'^set_kind_[a-z]+$'),
            ],

            AddItemState.AWAITING_DECK: [
                CallbackQueryHandler(hand_item.selected_deck, pattern=r'^deck_\d+$'),
                CallbackQueryHandler(hand_item.back_to_preview, pattern='^back$'),
            ],

            AddItemState.CONFIRMATION_PREVIEW: [
                CallbackQueryHandler(hand_item.save_item, pattern='^save_item$'),
                CallbackQueryHandler(hand_item.edit_item, pattern='^edit_item$'),
                CallbackQueryHandler(hand_item.change_deck, pattern='^change_deck$'),
                CallbackQueryHandler(hand_item.change_kind, pattern='^change_kind$'),
                CallbackQueryHandler(hand_item.cancel, pattern='^cancel$'),
            ],
        },

        fallbacks=[
            CommandHandler('cancel', hand_item.cancel),
            CommandHandler('start', hand_start.force_start),
        ]
    )

    # Study conversation
    study_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(hand_study.study_entry, pattern='^study$'),
            CallbackQueryHandler(hand_study.study_deck_selected, pattern=r'^study_deck_\d+$'),
            CommandHandler('study', hand_study.study_command),
        ],
        per_message=False,

        states={
            StudyState.DECK_PICKER: [
                CallbackQueryHandler(hand_study.study_deck_selected, pattern=r'^study_deck_\d+$'),
            ],

            StudyState.AWAITING_ANSWER: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, hand_study.receive_answer),
                CallbackQueryHandler(hand_study.dont_know, pattern='^study_dont_know$'),
                CallbackQueryHandler(hand_study.settings_entry, pattern='^study_settings$'),
                CallbackQueryHandler(hand_study.stop_study, pattern='^study_stop$'),
            ],

            StudyState.FEEDBACK: [
                CallbackQueryHandler(hand_study.mark_correct, pattern='^study_mark_correct$'),
                CallbackQueryHandler(hand_study.next_card, pattern='^study_next$'),
                CallbackQueryHandler(hand_study.toggle_endless, pattern='^study_endless$'),
                CallbackQueryHandler(hand_study.settings_entry, pattern='^study_settings$'),
                CallbackQueryHandler(hand_study.stop_study, pattern='^study_stop$'),
            ],

            StudyState.SETTINGS: [
                CallbackQueryHandler(hand_study.set_direction, pattern=r'^study_dir_[a-z_]+$'),
                CallbackQueryHandler(hand_study.toggle_endless, pattern='^study_endless$'),
                CallbackQueryHandler(hand_study.next_card, pattern='^study_next$'),
                CallbackQueryHandler(hand_study.stop_study, pattern='^study_stop$'),
            ],
        },

        fallbacks=[
            CommandHandler('cancel', hand_study.stop_study),
            CommandHandler('start', hand_start.force_start),
        ]
    )

    application.add_handler(CommandHandler('start', hand_start.start))
    application.add_handler(add_item_handler)
    application.add_handler(study_handler)
    application.add_handler(hand_manage.create_deck_handler)
    application.add_handler(hand_manage.rename_deck_handler)
    application.add_handler(hand_manage.edit_item_handler)

    # Slash commands
    application.add_handler(CommandHandler('stats', hand_stats.stats_command))
    application.add_handler(CommandHandler('decks', hand_decks_menu.decks_command))
    application.add_handler(CommandHandler('help', hand_help.help_command))

    # Standalone callback handlers
    application.add_handler(CallbackQueryHandler(hand_start.main_menu, pattern='^main_menu$'))
    application.add_handler(CallbackQueryHandler(hand_stats.stats_entry, pattern='^stats$'))
    application.add_handler(CallbackQueryHandler(hand_help.help_entry, pattern='^help$'))

    # My Decks
    application.add_handler(CallbackQueryHandler(hand_decks_menu.my_decks_entry, pattern='^my_decks$'))
    application.add_handler(CallbackQueryHandler(hand_decks_menu.decks_page, pattern=r'^decks_page_\d+$'))

    # Manage: deck detail & item actions
    application.add_handler(CallbackQueryHandler(hand_manage.deck_open, pattern=r'^deck_open_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.deck_items_page, pattern=r'^deck_page_\d+_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.item_remove, pattern=r'^item_remove_\d+_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.item_delete_confirm, pattern=r'^item_delete_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.item_delete_yes, pattern=r'^item_delete_yes_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.deck_add_items, pattern=r'^deck_add_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.deck_add_item_yes, pattern=r'^deck_additem_\d+_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.deck_delete_confirm, pattern=r'^deck_delete_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.deck_delete_yes, pattern=r'^deck_delete_yes_\d+$'))

    application.add_error_handler(error_handler)
    application.run_polling()


async def gatekeeper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Drop updates from anyone but the configured learner."""
    user = update.effective_user
    if user is None or user.id != ALLOWED_USER_ID:
        logging.warning(f"Ignoring update from user {user.id if user else None}")
        raise ApplicationHandlerStop


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Global error handler: logs the error and tries to notify the user."""
    error = context.error
    logging.error(f"Update {update} caused error: {error}", exc_info=error)

    if isinstance(error, Forbidden):
        # User blocked the bot
        logging.warning(f"Bot was blocked by user: {error}")
        return

    if isinstance(error, (TimedOut, NetworkError)):
        logging.warning(f"Network issue: {error}")
        return

    if isinstance(error, BadRequest):
        msg = str(error).lower()
        if "message is not modified" in msg:
            # Same button tapped twice
            return
        if "message to edit not found" in msg:
            return
        logging.warning(f"Bad request: {error}")

    # Store failures land here too: tell the user to retry
    if isinstance(update, Update) and update.effective_chat:
        try:
            await context.bot.send_message(
                chat_id=update.effective_chat.id,
                text="⚠️ Something went wrong. Try again, or /start to reset."
            )
        except (Forbidden, TimedOut, NetworkError, BadRequest) as e:
            logging.warning(f"Could not notify user about the error: {e}")


if __name__ == '__main__':
    logging.info("Init db...")
    init_db()

    logging.info("Starting app")
    main()
