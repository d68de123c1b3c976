"""
odoodeploy Constants

Centralized constants for magic values, defaults, and host paths.
"""

# Default Deployment Configuration
DEFAULT_DB_USER = "odoo"
DEFAULT_DB_NAME = "postgres"
DEFAULT_ODOO_VERSION = "17.0"
DEFAULT_POSTGRES_VERSION = "16"
DEFAULT_STACK_ROOT = "/opt/odoo-docker"
DEFAULT_NETWORK_NAME = "odoo-net"
DEFAULT_SITE_NAME = "odoo"
DEFAULT_ODOO_PORT = 8069

# Environment variable prefix for configuration (ODOODEPLOY_DOMAIN, ...)
ENV_PREFIX = "ODOODEPLOY_"

# Compose services
DB_SERVICE = "db"
ODOO_SERVICE = "odoo"
STACK_SERVICES = (DB_SERVICE, ODOO_SERVICE)

# Odoo server limits
ODOO_LIMIT_TIME_CPU = 120
ODOO_LIMIT_TIME_REAL = 240
ODOO_ADDONS_MOUNT = "/mnt/extra-addons"

# Package sets
BASE_PACKAGES = ("ca-certificates", "curl", "gnupg", "lsb-release", "ufw")
DOCKER_PACKAGES = (
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
)
PROXY_PACKAGES = ("nginx", "certbot", "python3-certbot-nginx")

# Docker apt repository
DOCKER_GPG_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_REPO_URL = "https://download.docker.com/linux/ubuntu"
APT_KEYRINGS_DIR = "/etc/apt/keyrings"
DOCKER_KEYRING = "/etc/apt/keyrings/docker.gpg"
DOCKER_SOURCE_LIST = "/etc/apt/sources.list.d/docker.list"
OS_RELEASE_FILE = "/etc/os-release"

# Nginx
NGINX_ROOT = "/etc/nginx"
NGINX_DEFAULT_SITE = "default"

# Firewall application profiles (ufw app list)
FIREWALL_SSH_RULE = "OpenSSH"
FIREWALL_PROXY_RULE = "Nginx Full"

# Let's Encrypt
LETSENCRYPT_LIVE_DIR = "/etc/letsencrypt/live"

# File modes
SECRET_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644
# odoo.conf is bind-mounted into the odoo image, which runs as uid/gid 101
CONTAINER_CONF_MODE = 0o640
ODOO_CONTAINER_GID = 101

# Marks a native step whose inputs changed but which has not applied them yet
PENDING_MARKER_PREFIX = ".pending-"

# Log Configuration
DEFAULT_LOG_DIR = "/var/log/odoodeploy"
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"

# Health check
HEALTH_LOG_TAIL = 50
