"""Start a throwaway PostgreSQL container and register it as a termtable connection."""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from termtable.app import build_registry
from termtable.config import load_config, save_config
from termtable.errors import TermtableError
from termtable.models import ConnectionProfile

DEFAULT_CONTAINER = "termtable-sample-db"
DEFAULT_PORT = 5544
DEFAULT_PASSWORD = "termtable"
DEFAULT_DB = "termtable_demo"
DEFAULT_USER = "termtable"
DEFAULT_NAME = "sample"
DOCKER_IMAGE = "postgres:16-alpine"

SEED_SQL = """
CREATE TABLE IF NOT EXISTS customers (
    id SERIAL PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    active BOOLEAN NOT NULL DEFAULT true,
    joined_on DATE NOT NULL DEFAULT current_date
);
CREATE TABLE IF NOT EXISTS invoices (
    id SERIAL PRIMARY KEY,
    customer_id INTEGER REFERENCES customers(id),
    total NUMERIC(10,2) NOT NULL,
    paid_at TIMESTAMPTZ
);
CREATE TABLE IF NOT EXISTS "Line Items" (
    invoice_id INTEGER REFERENCES invoices(id),
    sku TEXT NOT NULL,
    quantity INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS empty_table (id INTEGER);
INSERT INTO customers (email, active) VALUES
    ('anna@example.com', true),
    ('ben@example.com', false),
    ('cara@example.com', true)
ON CONFLICT DO NOTHING;
INSERT INTO invoices (customer_id, total, paid_at)
SELECT id, (random() * 100)::numeric(10,2), CASE WHEN active THEN now() END
FROM customers
WHERE NOT EXISTS (SELECT 1 FROM invoices);
INSERT INTO "Line Items" (invoice_id, sku, quantity)
SELECT id, 'SKU-' || id, 1 + id % 3
FROM invoices
WHERE NOT EXISTS (SELECT 1 FROM "Line Items");
""".strip()


def run(cmd: list[str], *, check: bool = True, **kwargs) -> subprocess.CompletedProcess[str]:
    print("$", " ".join(cmd))
    return subprocess.run(cmd, check=check, text=True, **kwargs)


def container_exists(name: str) -> bool:
    result = subprocess.run(
        ["docker", "ps", "-a", "--filter", f"name={name}", "--format", "{{.ID}}"],
        text=True,
        capture_output=True,
    )
    return bool(result.stdout.strip())


def start_container(args: argparse.Namespace) -> None:
    if container_exists(args.container):
        print(f"Container '{args.container}' already exists. Reusing it.")
        run(["docker", "start", args.container], check=False)
    else:
        run(
            [
                "docker",
                "run",
                "-d",
                "--name",
                args.container,
                "-e",
                f"POSTGRES_PASSWORD={args.password}",
                "-e",
                f"POSTGRES_DB={args.database}",
                "-e",
                f"POSTGRES_USER={args.user}",
                "-p",
                f"{args.port}:5432",
                DOCKER_IMAGE,
            ]
        )
    wait_until_ready(args.container, args.user)


def wait_until_ready(name: str, user: str, retries: int = 15, delay: float = 1.0) -> None:
    for _ in range(retries):
        result = subprocess.run(["docker", "exec", name, "pg_isready", "-U", user], text=True)
        if result.returncode == 0:
            return
        time.sleep(delay)
    print("Warning: database did not report ready state; continuing anyway.")


def seed_data(args: argparse.Namespace) -> None:
    run(
        ["docker", "exec", "-i", args.container, "psql", "-U", args.user, "-d", args.database, "-v", "ON_ERROR_STOP=1"],
        input=SEED_SQL,
    )


def register_connection(args: argparse.Namespace) -> None:
    """Save the container as a connection and make it the preselected one."""

    config = load_config()
    registry = build_registry(config)
    registry.save(
        ConnectionProfile(
            name=args.name,
            host="localhost",
            port=str(args.port),
            database=args.database,
            user=args.user,
            password=args.password,
        )
    )
    save_config(config.with_last_connection(args.name))
    print(f"Saved connection '{args.name}' to {config.resolved_metadata_path()}.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--container", default=DEFAULT_CONTAINER, help="Docker container name")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Host port to expose Postgres on")
    parser.add_argument("--password", default=DEFAULT_PASSWORD, help="Postgres password")
    parser.add_argument("--database", default=DEFAULT_DB, help="Database name to create")
    parser.add_argument("--user", default=DEFAULT_USER, help="Database user")
    parser.add_argument("--name", default=DEFAULT_NAME, help="Connection name to save")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        start_container(args)
        seed_data(args)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    try:
        register_connection(args)
    except TermtableError as exc:
        print(f"Could not save connection: {exc}")
        return 1
    print(f"Sample database is ready. Run `termtable` and choose 'Join Existing' -> '{args.name}'.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
