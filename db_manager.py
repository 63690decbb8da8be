#!/usr/bin/env python
# db_manager.py
import argparse
import getpass
import os
import sys
import logging
import subprocess

from sqlalchemy import func, select

from app.core.config import settings
from app.core.db import get_db_context, init_db
from app.core.security import get_password_hash
from app.models.field_change import FieldChange
from app.models.integration import IntegrationConfig
from app.models.user import User
from app.sync.field_change_repository import FieldChangeRepository
from app.sync.variable_encoder import EncodedValue, variable_encoder

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def initialize_db():
    """Create every table in the configured database"""
    logger.info(f"Initializing database at {settings.SQLALCHEMY_DATABASE_URI}")
    init_db()
    return True


def enable_integration(name, objects):
    """Publish an integration and turn sync on for the given object types"""
    init_db()
    with get_db_context() as db:
        config = db.query(IntegrationConfig).filter(IntegrationConfig.name == name).first()
        if config is None:
            config = IntegrationConfig(name=name)
            db.add(config)

        config.is_published = True
        config.sync_enabled = True
        if objects:
            config.sync_objects = sorted(set(objects))
        db.commit()

        logger.info(f"Enabled integration {name} for {config.sync_objects or []}")
    return True


def disable_integration(name):
    with get_db_context() as db:
        config = db.query(IntegrationConfig).filter(IntegrationConfig.name == name).first()
        if config is None:
            logger.error(f"Integration {name} is not configured")
            return False

        config.sync_enabled = False
        db.commit()
        logger.info(f"Disabled sync for integration {name}")
    return True


def create_user(username, admin=False, can_edit=False):
    init_db()
    password = getpass.getpass(f"Password for {username}: ")

    with get_db_context() as db:
        if db.query(User).filter(User.username == username).first():
            logger.error(f"User {username} already exists")
            return False

        db.add(User(
            username=username,
            hashed_password=get_password_hash(password),
            is_admin=admin,
            can_edit=can_edit or admin
        ))
        db.commit()
        logger.info(f"Created user {username}")
    return True


def show_changes(name, object_type=None):
    """Print the pending field changes of an integration"""
    with get_db_context() as db:
        query = select(FieldChange).where(FieldChange.integration == name)
        if object_type:
            query = query.where(FieldChange.object_type == object_type)
        query = query.order_by(FieldChange.object_type, FieldChange.object_id, FieldChange.column_name)

        changes = list(db.scalars(query))
        print(f"\n=== Pending changes for {name} ({len(changes)}) ===")
        for change in changes:
            value = variable_encoder.decode(EncodedValue(change.column_type, change.column_value))
            print(f"  {change.object_type}:{change.object_id} {change.column_name} = {value!r} "
                  f"[{change.column_type}] at {change.modified_at}")
    return True


def show_db_info():
    """Show the database location, integration configuration and ledger size"""
    print("\n=== Database Information ===")
    print(f"Database: {settings.SQLALCHEMY_DATABASE_URI}")

    if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite") and os.path.exists(settings.DB_PATH):
        size_mb = os.path.getsize(settings.DB_PATH) / (1024 * 1024)
        print(f"Size: {size_mb:.2f} MB")

    init_db()
    with get_db_context() as db:
        configs = db.query(IntegrationConfig).order_by(IntegrationConfig.name).all()
        counts = dict(db.execute(
            select(FieldChange.integration, func.count(FieldChange.id)).group_by(FieldChange.integration)
        ).all())

        print("\nIntegrations:")
        if not configs:
            print("  - None configured")
        for config in configs:
            state = "enabled" if config.is_published and config.sync_enabled else "disabled"
            print(f"  - {config.name}: {state}, objects {config.sync_objects or []}, "
                  f"{counts.get(config.name, 0):,} pending changes")

    print("\nCommands:")
    print("  - Initialize: python db_manager.py init")
    print("  - Enable sync: python db_manager.py enable NAME --objects contact company")
    print("  - Disable sync: python db_manager.py disable NAME")
    print("  - Pending changes: python db_manager.py changes NAME")
    print("  - Start: python db_manager.py start")

    return True


def start_app():
    """Start the API server"""
    logger.info(f"Starting application on {settings.HOST}:{settings.PORT}...")
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn", "app.main:app",
            "--host", settings.HOST,
            "--port", str(settings.PORT),
            "--log-level", settings.LOG_LEVEL,
        ], check=True)
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error(f"Error starting app: {e}")
        return False


def main():
    """Main entry point for the DB manager"""
    parser = argparse.ArgumentParser(description="Manage the sync ledger database")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init", help="Create database tables")

    enable_parser = subparsers.add_parser("enable", help="Enable sync for an integration")
    enable_parser.add_argument("name", help="Integration name")
    enable_parser.add_argument("--objects", nargs="+", default=[], help="Object types to sync")

    disable_parser = subparsers.add_parser("disable", help="Disable sync for an integration")
    disable_parser.add_argument("name", help="Integration name")

    user_parser = subparsers.add_parser("create-user", help="Create an API user")
    user_parser.add_argument("username")
    user_parser.add_argument("--admin", action="store_true", help="Grant admin rights")
    user_parser.add_argument("--can-edit", action="store_true", help="Allow editing records")

    changes_parser = subparsers.add_parser("changes", help="Show pending field changes of an integration")
    changes_parser.add_argument("name", help="Integration name")
    changes_parser.add_argument("--object-type", help="Only this object type")

    subparsers.add_parser("info", help="Show database information")
    subparsers.add_parser("start", help="Start the application")

    args = parser.parse_args()

    if args.command == "init":
        ok = initialize_db()
    elif args.command == "enable":
        ok = enable_integration(args.name, args.objects)
    elif args.command == "disable":
        ok = disable_integration(args.name)
    elif args.command == "create-user":
        ok = create_user(args.username, args.admin, args.can_edit)
    elif args.command == "changes":
        ok = show_changes(args.name, args.object_type)
    elif args.command == "info":
        ok = show_db_info()
    elif args.command == "start":
        ok = start_app()
    else:
        parser.print_help()
        sys.exit(1)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
