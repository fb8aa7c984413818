"""Global pytest configuration."""

import os

# Pin settings before any imports so a developer's .env or shell cannot leak in
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["DASHSCOPE_API_KEY"] = ""
os.environ["AMAP_REST_KEY"] = ""
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["INTERNATIONALITY_ORACLE_ENABLED"] = "false"
