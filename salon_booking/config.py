"""
Application settings, read once from the environment
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salon.db")

# Owner tokens are issued by the external auth provider with this shared key
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

# Fernet key for channel credentials
# Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

# Bearer secret shared with the external daily scheduler
CRON_SECRET = os.getenv("CRON_SECRET")

# "line" or "telegram"
MESSAGING_TRANSPORT = os.getenv("MESSAGING_TRANSPORT", "line")

LINE_API_BASE = os.getenv("LINE_API_BASE", "https://api.line.me/v2/bot")
LINE_HTTP_TIMEOUT = float(os.getenv("LINE_HTTP_TIMEOUT", "10"))

# Reminder dates are always computed in JST
NOTIFICATION_UTC_OFFSET_HOURS = 9

FOLLOWER_SYNC_BATCH_SIZE = int(os.getenv("FOLLOWER_SYNC_BATCH_SIZE", "5"))
