#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from strategy_vault.config.loader import ConfigLoader
from strategy_vault.config.validation import ConfigValidator, ValidationError
from strategy_vault.errors import ConfigError


def validate_resolved_config(loader: ConfigLoader) -> List[ValidationError]:
    """Validate configuration resolved from defaults, settings.yaml and environment."""
    config = loader.load()
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    print("🔍 Validating Strategy Vault configuration...")

    loader = ConfigLoader.create()
    print(f"📁 Config directory: {loader.config_dir}")

    try:
        errors = validate_resolved_config(loader)
    except ConfigError as e:
        print(f"❌ Could not load configuration: {e}")
        sys.exit(1)

    if errors:
        print(f"❌ Found {len(errors)} validation errors:")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        print("\n💡 The executor address is usually set with STRATEGY_VAULT_EXECUTOR_ADDRESS")
        print("💡 File-backed stores also need STRATEGY_VAULT_ENCRYPTION_KEY (base64 of 32 bytes)")
        print("\n❌ Configuration validation failed!")
        sys.exit(1)

    config = loader.load()
    executor = "HTTP " + config.execution.executor_url if config.execution.executor_url else "simulated"
    print(f"✅ Executor: {executor}")
    print(f"✅ Ownership store: {config.store.db_path}")
    print("\n🎉 All configuration validation passed!")
    sys.exit(0)


if __name__ == "__main__":
    main()
