"""
HTTP surfaces: entity sync, firm provisioning and the purge trigger.
"""
