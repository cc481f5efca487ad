# init_db.py (in backend folder)

import argparse

from sqlalchemy import inspect

from scim_connector.core.config import load_settings
from scim_connector.core.crypto import CredentialVault
from scim_connector.infra.postgres import engine, init_db


def describe_tables(bind) -> dict:
    """Table name -> [(column, type)]"""
    inspector = inspect(bind)
    return {
        table: [(col["name"], str(col["type"])) for col in inspector.get_columns(table)]
        for table in inspector.get_table_names()
    }


def main(argv=None, bind=None) -> dict:
    parser = argparse.ArgumentParser(description="Create the provisioned users table and keypair")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    parser.add_argument("--no-keys", action="store_true", help="skip keypair generation")
    args = parser.parse_args(argv)

    bind = bind if bind is not None else engine
    if args.drop:
        print("⚠️  Dropping all tables...")

    print("📦 Creating tables...")
    init_db(bind=bind, drop=args.drop)
    print("✅ Database initialized successfully!")

    if not args.no_keys:
        settings = load_settings()
        CredentialVault(settings.key_dir).ensure_keypair()
        print(f"🔑 Keypair ready in {settings.key_dir}")

    tables = describe_tables(bind)
    print(f"\nCreated tables: {list(tables)}")
    for table, columns in tables.items():
        print(f"\n{table}:")
        for name, col_type in columns:
            print(f"  - {name}: {col_type}")
    return tables


if __name__ == "__main__":
    main()
