import logging
import os
from dotenv import load_dotenv

load_dotenv()

TG_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN')
PROXY_URL = os.getenv('PROXY_URL')

# Personal bot: when set, only this Telegram user may talk to it
_allowed = os.getenv('ALLOWED_USER_ID')
ALLOWED_USER_ID = int(_allowed) if _allowed else None

DB_PATH = os.getenv(
    'VOCAB_DB_PATH',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'vocab.db'),
)

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=os.getenv('LOG_LEVEL', 'INFO').upper()
)
