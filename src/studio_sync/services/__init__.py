"""Domain services: credential signing, calendar, sync dispatch, provisioning and purge."""
