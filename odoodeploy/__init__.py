"""odoodeploy - idempotent single-host Odoo provisioning"""

__version__ = "1.0.0"
