import os
from dotenv import load_dotenv

# Load .env when running locally
load_dotenv()


def _flag(name, default="true"):
    return os.getenv(name, default).lower() == "true"


class Settings:
    # ─────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR", "logs")

    # ─────────────────────────────────────────────
    # Sampler Workers
    # ─────────────────────────────────────────────
    # One worker thread (and one random stream) per slot
    NUM_THREADS = int(os.getenv("M3F_NUM_THREADS", os.cpu_count() or 1))
    SEED = int(os.getenv("M3F_SEED", 42))

    # ─────────────────────────────────────────────
    # Offset Gates
    # ─────────────────────────────────────────────
    SAMPLE_USER_PARAMS = _flag("M3F_SAMPLE_USER_PARAMS")
    SAMPLE_ITEM_PARAMS = _flag("M3F_SAMPLE_ITEM_PARAMS")

    # Check labels / ids / adjacency before every call
    VALIDATE_INPUTS = _flag("M3F_VALIDATE_INPUTS")

    # ─────────────────────────────────────────────
    # Paths
    # ─────────────────────────────────────────────
    DATA_DIR = os.getenv("M3F_DATA_DIR", "data")
    ARTIFACT_DIR = os.getenv("M3F_ARTIFACT_DIR", "artifacts")


# IMPORTANT — this is what the sampler and entry point import
settings = Settings()
