"""Global pytest configuration."""

import os

# Keep tests on the in-memory repository and the stub extractor
os.environ.pop("DATABASE_URL", None)
os.environ["OPENAI_API_KEY"] = ""
