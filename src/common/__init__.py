from common import llm
from common.ids import generate_id
from common.jsonio import atomic_write_text, load_text

__all__ = ["llm", "generate_id", "load_text", "atomic_write_text"]
