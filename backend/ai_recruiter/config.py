# backend/ai_recruiter/config.py
import os
import pathlib
from dotenv import load_dotenv

# load backend/.env
BASE_DIR = pathlib.Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=os.path.join(BASE_DIR, ".env"))

# ------ database ------
MONGODB_URI = os.getenv("MONGODB_URI")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "recruiterDB")

# ------ completion endpoint (OpenRouter, OpenAI-compatible) ------
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
QUESTIONS_MODEL = os.getenv("QUESTIONS_MODEL", "google/gemma-3-4b-it:free")
FEEDBACK_MODEL = os.getenv("FEEDBACK_MODEL", "google/gemini-2.0-flash-exp:free")

# ------ voice service ------
VAPI_API_KEY = os.getenv("VAPI_API_KEY")
VAPI_BASE_URL = os.getenv("VAPI_BASE_URL", "https://api.vapi.ai")
# public URL of POST /vapi/webhook, forwarded to the assistant as its server URL
VAPI_SERVER_URL = os.getenv("VAPI_SERVER_URL")

# ------ app ------
HOST_URL = os.getenv("HOST_URL", "http://localhost:3000")
SESSION_TICK_SECONDS = float(os.getenv("SESSION_TICK_SECONDS", "1"))
# finished sessions stay readable this long before they are dropped from memory
SESSION_GRACE_SECONDS = float(os.getenv("SESSION_GRACE_SECONDS", "300"))
