import sys
import argparse
import time
from pathlib import Path

import uvicorn
from fastapi import Request
from prometheus_client import Counter, Histogram
from alembic import command
from alembic.config import Config
import logging
from prometheus_fastapi_instrumentator import Instrumentator
from .app import create_app
from .app.config import DATABASE_URL
from .app.auth import get_password_hash
from .app.dependencies import SessionLocal, UserRole, engine
from .app.doctor_stats import sync_all_doctor_statistics
from .app.models import Base, User

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

app = create_app()

# Custom Prometheus metrics for specific routes
ROUTE_REQUEST_COUNT = Counter("route_request_count", "Total number of requests per route", ["method", "endpoint"])
ROUTE_REQUEST_LATENCY = Histogram("route_request_latency_seconds", "Request latency in seconds per route", ["method", "endpoint"])


# Middleware to track custom metrics
@app.middleware("http")
async def add_metrics(request: Request, call_next):
    start_time = time.time()

    # Process the request
    response = await call_next(request)

    # Label by route template so path ids don't explode the label set
    route = request.scope.get("route")
    endpoint = route.path if route is not None else request.url.path
    ROUTE_REQUEST_COUNT.labels(method=request.method, endpoint=endpoint).inc()
    ROUTE_REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(time.time() - start_time)

    return response


# Instrument the app with Prometheus metrics
Instrumentator().instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")


def start_server(host="0.0.0.0", port=5000):
    uvicorn.run(app, host=host, port=port)


def create_tables():
    print(f"Using database URL: {DATABASE_URL}")
    Base.metadata.create_all(engine)
    print("Database tables created successfully.")


def alembic_config():
    alembic_cfg = Config()
    alembic_cfg.set_main_option('sqlalchemy.url', DATABASE_URL)
    alembic_cfg.set_main_option('script_location', str(MIGRATIONS_DIR))
    return alembic_cfg


def run_migrations(action, revision=None, message=None):
    alembic_cfg = alembic_config()

    if action == "upgrade":
        command.upgrade(alembic_cfg, "head")
    elif action == "downgrade":
        if not revision:
            print("Please specify a revision to downgrade to.")
            return
        command.downgrade(alembic_cfg, revision)
    elif action == "revision":
        if not message:
            print("Please provide a message for the migration.")
            return
        command.revision(alembic_cfg, autogenerate=True, message=message)
    elif action == "current":
        command.current(alembic_cfg)
    else:
        print("Invalid action specified for migrations.")


def sync_statistics():
    refreshed = sync_all_doctor_statistics()
    print(f"Statistics refreshed for {refreshed} doctor(s).")


def create_admin(email, password, first_name="Admin", last_name="User"):
    """Create the admin account, or reset its password and role if the email already exists."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user:
            user.hashed_password = get_password_hash(password)
            user.role = UserRole.ADMIN.value
            user.is_verified = True
            print(f"Admin {email} updated.")
        else:
            db.add(User(
                email=email,
                hashed_password=get_password_hash(password),
                first_name=first_name,
                last_name=last_name,
                role=UserRole.ADMIN.value,
                is_verified=True,
            ))
            print(f"Admin {email} created.")
        db.commit()
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Therapy Booking Application")
    parser.add_argument(
        '--mode',
        type=str,
        choices=['server', 'create-tables', 'migrate', 'sync-statistics', 'create-admin'],
        required=True,
        help="Mode to run the application in. Choices are 'server' to start the FastAPI server, 'create-tables' to create the database tables, 'migrate' to manage database migrations, 'sync-statistics' to recompute every doctor's statistics, or 'create-admin' to create or reset the admin account."
    )

    parser.add_argument(
        '--action',
        type=str,
        choices=['upgrade', 'downgrade', 'revision', 'current'],
        help="Action to perform with Alembic migrations. Required if mode is 'migrate'."
    )

    parser.add_argument(
        '--revision',
        type=str,
        help="Specify the revision for downgrade or other Alembic commands where needed."
    )

    parser.add_argument(
        '--message',
        type=str,
        help="Message to use with the 'revision' action in Alembic."
    )

    parser.add_argument('--host', type=str, default="0.0.0.0", help="Host to bind in 'server' mode.")
    parser.add_argument('--port', type=int, default=5000, help="Port to bind in 'server' mode.")
    parser.add_argument('--email', type=str, help="Admin email for 'create-admin' mode.")
    parser.add_argument('--password', type=str, help="Admin password for 'create-admin' mode.")

    args = parser.parse_args()

    if args.mode == 'server':
        start_server(args.host, args.port)
    elif args.mode == 'create-tables':
        create_tables()
    elif args.mode == 'migrate':
        if not args.action:
            print("Please specify an action for the 'migrate' mode.")
        else:
            run_migrations(args.action, args.revision, args.message)
    elif args.mode == 'sync-statistics':
        sync_statistics()
    elif args.mode == 'create-admin':
        if not args.email or not args.password:
            print("Please provide --email and --password for the 'create-admin' mode.")
        else:
            create_admin(args.email, args.password)


if __name__ == "__main__":
    main()
