import json
import os

# Define the template structure matching utils/models/settings_model.py
def generate_template():
    """Generate template settings.json with placeholder values"""
    template = {
        "namespace": "${NAMESPACE}",
        "chain_id": "${CHAIN_ID}",
        "network": "${NETWORK}",
        "rpc": {
            "url": "${RPC_URL}",
            "retry": "${RPC_RETRY}",
            "request_time_out": "${RPC_TIMEOUT}"
        },
        "redis": {
            "host": "${REDIS_HOST}",
            "port": "${REDIS_PORT}",
            "db": "${REDIS_DB}",
            "password": "${REDIS_PASSWORD}",
            "ssl": "${REDIS_SSL}"
        },
        "logs": {
            "debug_mode": "${LOG_DEBUG}",
            "write_to_files": "${LOG_TO_FILES}",
            "level": "${LOG_LEVEL}"
        },
        "contracts": {
            "factory_address": "${FACTORY_ADDRESS}",
            "payment_address": "${PAYMENT_ADDRESS}",
            "nft_contracts": []
        },
        "filter": {
            "enabled": "${FILTER_ENABLED}",
            "auto_discovery": "${AUTO_DISCOVERY}",
            "persist_discovered": "${PERSIST_DISCOVERED}"
        },
        "sync": {
            "enabled": "${SYNC_ENABLED}",
            "interval_seconds": "${SYNC_INTERVAL_SECONDS}",
            "watch_changes": "${SYNC_WATCH_CHANGES}",
            "watch_retry_seconds": "${SYNC_WATCH_RETRY_SECONDS}"
        }
    }

    # Ensure config directory exists
    config_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config') # Assumes scripts/ is one level below root
    os.makedirs(config_dir, exist_ok=True)
    template_path = os.path.join(config_dir, 'settings.template.json')

    with open(template_path, 'w') as f:
        json.dump(template, f, indent=2)
    print(f"Generated template at {template_path}")

if __name__ == "__main__":
    generate_template()
