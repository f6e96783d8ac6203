"""Write the local .env for Longform and create the content store.

Example::

    python scripts/dev_setup.py --deepseek-api-key sk-... --deepseek-model deepseek-chat
"""
from __future__ import annotations

import argparse
import os
import secrets
import sys
from pathlib import Path
from typing import Dict

from dotenv import dotenv_values, set_key

REPO_ROOT = Path(__file__).resolve().parents[1]

# Command-line option -> .env variable.
SETTINGS = {
    "secret_key": "SECRET_KEY",
    "deepseek_api_key": "DEEPSEEK_API_KEY",
    "deepseek_base_url": "DEEPSEEK_BASE_URL",
    "deepseek_model": "DEEPSEEK_MODEL",
    "database_url": "DATABASE_URL",
}
MASKED = {"SECRET_KEY", "DEEPSEEK_API_KEY"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Configure Longform for local development.")
    parser.add_argument("--env-path", type=Path, default=REPO_ROOT / ".env")
    parser.add_argument("--secret-key", help="Flask secret key (generated when the .env has none)")
    parser.add_argument("--deepseek-api-key", help="API key of the chat-completion endpoint")
    parser.add_argument("--deepseek-base-url", help="OpenAI-compatible base URL")
    parser.add_argument("--deepseek-model", help="Model name sent with every request")
    parser.add_argument("--database-url", help="SQLAlchemy URI of the content store")
    parser.add_argument("--skip-db", action="store_true", help="Leave the content store untouched")
    return parser


def collect_updates(args: argparse.Namespace, current: Dict[str, str]) -> Dict[str, str]:
    updates = {"FLASK_APP": "wsgi.py"}
    for option, variable in SETTINGS.items():
        value = getattr(args, option)
        if value:
            updates[variable] = value
    if "SECRET_KEY" not in updates and not current.get("SECRET_KEY"):
        updates["SECRET_KEY"] = secrets.token_hex(32)
    return updates


def apply_updates(env_path: Path, updates: Dict[str, str]) -> Dict[str, str]:
    env_path.touch(exist_ok=True)
    for variable, value in updates.items():
        set_key(str(env_path), variable, value)
    return {key: value or "" for key, value in dotenv_values(env_path).items()}


def initialize_store(env_path: Path) -> None:
    # Config reads the .env at import time, so import only after it is written.
    os.environ["LONGFORM_ENV_FILE"] = str(env_path)
    if str(REPO_ROOT) not in sys.path:
        sys.path.insert(0, str(REPO_ROOT))
    from longform import create_app

    app = create_app()
    print(f"Content store ready at {app.config['SQLALCHEMY_DATABASE_URI']}")


def describe(values: Dict[str, str]) -> None:
    for key in sorted(values):
        value = values[key]
        print(f"  {key}={value[:4] + '…' if key in MASKED and value else value}")


def main() -> None:
    args = build_parser().parse_args()
    env_path = args.env_path.resolve()
    current = {key: value or "" for key, value in dotenv_values(env_path).items()} if env_path.exists() else {}

    values = apply_updates(env_path, collect_updates(args, current))
    print(f"Wrote {env_path}:")
    describe(values)

    if args.skip_db:
        print("Content store initialization skipped.")
    else:
        initialize_store(env_path)


if __name__ == "__main__":
    main()
