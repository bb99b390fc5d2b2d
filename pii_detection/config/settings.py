"""
Environment settings loaded from .env file.
"""
import os
from dotenv import load_dotenv

load_dotenv()


# --- Pipeline thresholds ---
ML_CONFIDENCE_THRESHOLD: float = float(os.getenv("ML_CONFIDENCE_THRESHOLD", "0.3"))
CONTEXT_WINDOW_SIZE: int = int(os.getenv("CONTEXT_WINDOW_SIZE", "50"))
AUTO_ANONYMIZE_THRESHOLD: float = float(os.getenv("AUTO_ANONYMIZE_THRESHOLD", "0.6"))
ENABLE_EPIC8_FEATURES: bool = os.getenv("ENABLE_EPIC8_FEATURES", "true").lower() == "true"
DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "de")

# --- DenyList ---
DENY_LIST_CONFIG_PATH: str = os.getenv("DENY_LIST_CONFIG_PATH", "")

# --- NLP Models ---
SPACY_MODEL: str = os.getenv("SPACY_MODEL", "xx_ent_wiki_sm")

# --- ML post-processing ---
ML_MAX_TOKENS: int = int(os.getenv("ML_MAX_TOKENS", "512"))
ML_OVERLAP_TOKENS: int = int(os.getenv("ML_OVERLAP_TOKENS", "50"))
ML_MAX_RETRIES: int = int(os.getenv("ML_MAX_RETRIES", "3"))
METRICS_MAX_RETENTION: int = int(os.getenv("METRICS_MAX_RETENTION", "1000"))

# --- Logging ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
