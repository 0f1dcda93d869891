import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    # Empty path keeps trips in memory only
    STORAGE_PATH = os.environ.get("LEDGER_STORAGE_PATH", "trips.json")

    CURRENCY_SYMBOL = os.environ.get("LEDGER_CURRENCY_SYMBOL", "₹")

    LOG_LEVEL = os.environ.get("LEDGER_LOG_LEVEL", "INFO").upper()

    HOST = os.environ.get("LEDGER_HOST", "0.0.0.0")
    PORT = int(os.environ.get("LEDGER_PORT", 5000))

    TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                                 "templates")


config = Config()
