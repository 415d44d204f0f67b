"""
Command-line interface for studio-sync operator tasks.

Syncs a single record, provisions a firm, runs the expired-firm purge and
shows the effective configuration. Every command prints a JSON result and
exits non-zero on failure.
"""

import argparse
import json
import sys
from datetime import datetime
from typing import Any, Callable, ContextManager, Dict, List, Optional

from sqlalchemy.orm import Session

from studio_sync.database.connection import get_db_context
from studio_sync.utils.logger import get_logger, setup_logging
from studio_sync.utils.config import get_config, validate_configuration
from studio_sync.utils.exceptions import ProvisioningError, StudioSyncError


# Setup CLI-specific logging
cli_logger = get_logger(__name__)


SessionFactory = Callable[[], ContextManager[Session]]


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


class StudioSyncCLI:
    """Command-line interface for studio-sync operations."""

    def __init__(self, session_factory: Optional[SessionFactory] = None, **service_kwargs):
        """
        Args:
            session_factory: Context manager yielding a database session
            service_kwargs: Passed to the dispatcher, provisioner and purger
                (auth_service, sheets_factory, ...)
        """
        self.session_factory = session_factory or get_db_context
        self.service_kwargs = service_kwargs

    def cmd_config(self, args) -> int:
        """Handle configuration commands."""
        if args.config_action == "validate":
            result = validate_configuration()
            _print_json(result)
            return 0 if result["valid"] else 1

        config = get_config()
        _print_json({
            "google": {
                "token_uri": config.google_token_uri,
                "scopes": config.google_scopes,
                "auth_timeout": config.google_auth_timeout,
                "auth_max_retries": config.google_auth_max_retries,
                "has_credential_json": bool(config.google_service_account_json),
                "key_path": config.google_service_account_key_path,
            },
            "sheets": {
                "font_family": config.sheets_font_family,
                "data_font_size": config.sheets_data_font_size,
                "header_font_size": config.sheets_header_font_size,
            },
            "calendar": {
                "api_base": config.calendar_api_base,
                "time_zone": config.calendar_time_zone,
            },
            "lifecycle": {
                "trial_days": config.trial_days,
                "grace_days": config.grace_days,
                "purge_schedule_hour": config.purge_schedule_hour,
            },
            "application": {
                "log_level": config.log_level,
                "log_dir": config.log_dir,
                "debug_mode": config.debug_mode,
            },
        })
        return 0

    def cmd_sync(self, args) -> int:
        """Sync one record, directly or through the Celery queue."""
        if args.queue:
            from studio_sync.workers.tasks import sync_entity

            task = sync_entity.delay(args.item_type, args.item_id, args.firm_id, args.operation)
            _print_json({"success": True, "queued": True, "taskId": task.id})
            return 0

        from studio_sync.services.sync_dispatcher import SyncDispatcher

        with self.session_factory() as db:
            result = SyncDispatcher(db, **self.service_kwargs).sync_entity(
                args.item_type, args.item_id, args.firm_id, args.operation
            )
        _print_json(result.to_response())
        return 0

    def cmd_provision(self, args) -> int:
        """Provision a new firm."""
        from studio_sync.services.provisioning import TenantMeta, TenantProvisioner, parse_creator

        meta = TenantMeta(
            name=args.name,
            created_by=parse_creator(args.created_by),
            description=args.description,
            contact_phone=args.contact_phone,
            contact_email=args.contact_email,
        )

        try:
            with self.session_factory() as db:
                result = TenantProvisioner(db, **self.service_kwargs).provision_tenant(
                    meta, args.spreadsheet, args.calendar_email
                )
                response = result.to_response()
        except ProvisioningError as e:
            _print_json({"success": False, "error": e.message, "phase": e.phase,
                         "createdResources": e.created_resources})
            return 1

        _print_json(response)
        return 0

    def cmd_purge(self, args) -> int:
        """Purge expired trial firms."""
        from studio_sync.services.purge import TenantPurger

        now = datetime.fromisoformat(args.now) if args.now else None
        with self.session_factory() as db:
            report = TenantPurger(db, **self.service_kwargs).purge_expired_tenants(now)
        _print_json(report.to_response())
        return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="studio-sync",
        description="studio-sync CLI - firm provisioning, spreadsheet sync and purge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  studio-sync config validate
  studio-sync sync client 5b1c... --firm 9f2e... --operation create
  studio-sync sync event 77aa... --firm 9f2e... --queue
  studio-sync provision --name "Lens & Light" --spreadsheet <url> --calendar-email owner@example.com
  studio-sync purge
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Configuration commands
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "config_action",
        choices=["validate", "show"],
        help="Configuration action to perform"
    )

    # Sync commands
    sync_parser = subparsers.add_parser("sync", help="Sync one record to its firm's spreadsheet")
    sync_parser.add_argument("item_type", help="client, event, task, expense, staff, freelancer, payment, ...")
    sync_parser.add_argument("item_id", help="Record UUID")
    sync_parser.add_argument("--firm", dest="firm_id", required=True, help="Firm UUID")
    sync_parser.add_argument(
        "--operation",
        choices=["create", "update", "delete"],
        default="update",
        help="Sync operation (default: update)"
    )
    sync_parser.add_argument(
        "--queue",
        action="store_true",
        help="Enqueue on the Celery sync queue instead of running inline"
    )

    # Provisioning
    provision_parser = subparsers.add_parser("provision", help="Provision a new firm")
    provision_parser.add_argument("--name", required=True, help="Firm name")
    provision_parser.add_argument("--spreadsheet", required=True, help="Spreadsheet ID or URL")
    provision_parser.add_argument("--calendar-email", help="Account to share the firm calendar with")
    provision_parser.add_argument("--created-by", help="UUID of the creating user")
    provision_parser.add_argument("--description", help="Firm tagline")
    provision_parser.add_argument("--contact-phone", help="Firm contact phone")
    provision_parser.add_argument("--contact-email", help="Firm contact email")

    # Purge
    purge_parser = subparsers.add_parser("purge", help="Purge expired trial firms")
    purge_parser.add_argument("--now", help="Reference time (ISO 8601, default: current UTC time)")

    return parser


def main(argv: Optional[List[str]] = None, cli: Optional[StudioSyncCLI] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging for CLI
    setup_logging()

    if not args.command:
        parser.print_help()
        return 1

    cli = cli or StudioSyncCLI()
    handlers = {
        "config": cli.cmd_config,
        "sync": cli.cmd_sync,
        "provision": cli.cmd_provision,
        "purge": cli.cmd_purge,
    }

    try:
        return handlers[args.command](args)
    except StudioSyncError as e:
        cli_logger.error(f"{args.command} failed: {e}")
        _print_json({"success": False, "error": e.message, "details": e.details})
        return 1
    except Exception as e:
        cli_logger.error(f"CLI operation failed: {e}", exc_info=True)
        print(f"Operation failed: {e}")
        return 1


def cli_entry_point():
    """Entry point for console script."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)


if __name__ == "__main__":
    cli_entry_point()
