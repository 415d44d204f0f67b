"""
Studio Sync

Tenant resource provisioning, synchronization and teardown engine for a
multi-tenant studio-management application. Mirrors each firm's business
records into a Google Sheets document and manages the firm's Google Calendar.
"""

__version__ = "1.0.0"
__author__ = "Studio Sync Team"
