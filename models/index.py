import importlib
import logging
from pathlib import Path
from config.database import engine, Base

logger = logging.getLogger(__name__)

API_DIR = Path(__file__).parent.parent / "api"

# Dictionary to store loaded models, keyed by table name
models = {}

def scan_models(directory: Path = API_DIR):
    """Import every `*_model.py` under `api/` by its dotted package path."""
    root = directory.parent
    for item in sorted(directory.rglob("*_model.py")):
        module_name = ".".join(item.relative_to(root).with_suffix("").parts)
        module = importlib.import_module(module_name)

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if hasattr(attr, "__tablename__"):
                models[attr.__tablename__] = attr
    logger.debug("Registered models: %s", sorted(models))
    return models

# Create tables in the database
def init_db(bind=engine):
    scan_models()
    Base.metadata.create_all(bind=bind)

if __name__ == "__main__":
    init_db()
    print("✅ Database initialized!")
