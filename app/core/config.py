import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lessons.db")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ==== Mensajería ====
# twilio | meta | console  (se resuelve UNA vez al arrancar, ver app/deps.py)
WHATSAPP_PROVIDER = os.getenv("WHATSAPP_PROVIDER", "console").strip().lower()

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_WHATSAPP_NUMBER = os.getenv("TWILIO_WHATSAPP_NUMBER", "whatsapp:+14155238886")  # sandbox

WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID", "")
WHATSAPP_ACCESS_TOKEN = os.getenv("WHATSAPP_ACCESS_TOKEN", "")
WHATSAPP_VERIFY_TOKEN = os.getenv("WHATSAPP_VERIFY_TOKEN", "")
WHATSAPP_GRAPH_VERSION = os.getenv("WHATSAPP_GRAPH_VERSION", "v18.0")

HTTP_TIMEOUT_SEC = int(os.getenv("HTTP_TIMEOUT_SEC", "20"))

# ==== Lecciones / quiz ====
QUIZ_START_DELAY_SEC = int(os.getenv("QUIZ_START_DELAY_SEC", "30"))
REWARD_CURRENCY = os.getenv("REWARD_CURRENCY", "L-Coins")
DEFAULT_VIDEO_DURATION = os.getenv("DEFAULT_VIDEO_DURATION", "5 min")

# ==== IA ====
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
MODEL_NAME = os.getenv("MODEL_NAME", "gemini-2.5-flash").strip()
