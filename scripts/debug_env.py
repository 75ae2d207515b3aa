#!/usr/bin/env python3
"""Debug environment variable loading."""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from autocoding.core.config import ENV_OVERRIDES, mask_secret

print("=" * 60)
print("Environment Variable Debug")
print("=" * 60)

print(f"\n1. Current directory: {Path.cwd()}")

env_path = Path(".env")
print(f"2. .env file exists: {env_path.exists()}")
if env_path.exists():
    print(f"   .env path: {env_path.absolute()}")

print("\n3. Loading .env file...")
load_dotenv()

print("\n4. Recognized variables:")
for env_var, section, key in ENV_OVERRIDES:
    value = os.getenv(env_var)
    shown = mask_secret(value) if value and 'KEY' in env_var else repr(value)
    print(f"   {env_var} -> {section}.{key}: {shown}")

print(f"\n5. AUTOCODING_DEV_MODE: {os.getenv('AUTOCODING_DEV_MODE')!r}")

print("\n" + "=" * 60)
