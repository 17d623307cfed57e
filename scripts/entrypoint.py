#!/usr/bin/env python3
import os
import sys
import json
import subprocess
from string import Template
from dotenv import load_dotenv

CONFIG_DIR = 'config' # Relative to WORKDIR (/app)
TEMPLATE_FILE = os.path.join(CONFIG_DIR, 'settings.template.json')
SETTINGS_FILE = os.path.join(CONFIG_DIR, 'settings.json')

# Optional settings fall back to these when the environment leaves them unset
ENV_DEFAULTS = {
    'NETWORK': '',
    'RPC_RETRY': '0',
    'RPC_TIMEOUT': '30',
    'REDIS_DB': '0',
    'REDIS_PASSWORD': '',
    'REDIS_SSL': 'false',
    'LOG_DEBUG': 'false',
    'LOG_TO_FILES': 'true',
    'LOG_LEVEL': 'INFO',
    'FILTER_ENABLED': 'true',
    'AUTO_DISCOVERY': 'true',
    'PERSIST_DISCOVERED': 'true',
    'SYNC_ENABLED': 'true',
    'SYNC_INTERVAL_SECONDS': '60',
    'SYNC_WATCH_CHANGES': 'false',
    'SYNC_WATCH_RETRY_SECONDS': '5',
}


def fill_template():
    """Fill settings template with environment variables"""
    load_dotenv() # Load .env file if present
    for key, value in ENV_DEFAULTS.items():
        os.environ.setdefault(key, value)

    if not os.path.exists(TEMPLATE_FILE):
        print(f"ERROR: Template file not found at {TEMPLATE_FILE}")
        sys.exit(1)

    with open(TEMPLATE_FILE, 'r') as f:
        template = Template(f.read())

    print("--- Substituting settings template ---")
    try:
        filled = json.loads(template.substitute(os.environ))
    except KeyError as e:
        print(f"ERROR: Missing environment variable for substitution: {e}. Check template and env vars.")
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"ERROR: Substituted template resulted in invalid JSON: {e}")
        sys.exit(1)

    # Comma-separated preload list, kept out of the template since it is a JSON array
    preload = os.environ.get('NFT_CONTRACTS', '')
    filled['contracts']['nft_contracts'] = [a.strip() for a in preload.split(',') if a.strip()]

    print(f"Writing final settings to {SETTINGS_FILE}")
    with open(SETTINGS_FILE, 'w') as f:
        json.dump(filled, f, indent=2)
    print("--- Settings substitution complete ---")


if __name__ == "__main__":
    fill_template()
    # `entrypoint.py backfill 100 200` runs the backfill script instead of the service
    if len(sys.argv) > 1 and sys.argv[1] == 'backfill':
        command = ["python", "-m", "scripts.backfill", *sys.argv[2:]]
    else:
        command = ["python", "main.py"]
    print(f"Executing: {' '.join(command)}")
    result = subprocess.run(command, check=False)
    sys.exit(result.returncode)
