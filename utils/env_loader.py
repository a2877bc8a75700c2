import io
from pathlib import Path

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parent.parent / ".env"


def load_env(env_path: Path = ENV_PATH) -> bool:
    """
    Load .env removing BOM/CRLF; variables already set in the environment win.

    Returns:
        True if a .env file was found
    """
    if not env_path.exists():
        return load_dotenv()
    content = env_path.read_text(encoding="utf-8-sig").replace("\r\n", "\n")
    load_dotenv(stream=io.StringIO(content))
    return True
