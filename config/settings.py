import os
from dotenv import load_dotenv

load_dotenv()

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", 8000))
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./memo_metrics.db")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:8000").split(",")
    if origin.strip()
]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# AI Gateway Configuration (any OpenAI-compatible chat completions endpoint)
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL")
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY")
AI_GATEWAY_MODEL = os.getenv("AI_GATEWAY_MODEL", "google/gemini-2.5-flash")

# Section synthesis limits (one LLM call per profile section)
LLM_SECTION_MAX_TOKENS = int(os.getenv("LLM_SECTION_MAX_TOKENS", 1500))
LLM_SECTION_TEMPERATURE = float(os.getenv("LLM_SECTION_TEMPERATURE", 0.7))

# Enrichment sync
ENRICHMENT_SYNC_BATCH_SIZE = int(os.getenv("ENRICHMENT_SYNC_BATCH_SIZE", 50))

# Metrics reconciliation
# "latest": incoming values always win (record-level confidence only goes up)
# "confidence": field-level, an incoming value wins only at >= field confidence
METRICS_MERGE_STRATEGY = os.getenv("METRICS_MERGE_STRATEGY", "latest")
METRICS_CONSISTENCY_TOLERANCE = float(os.getenv("METRICS_CONSISTENCY_TOLERANCE", 0.05))

# Reserved question_key holding the canonical metrics record in memo_responses
METRICS_SENTINEL_KEY = os.getenv("METRICS_SENTINEL_KEY", "__extracted_metrics__")
