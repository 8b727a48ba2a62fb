from storefront.config.settings import config_settings
from storefront.common.logging_setup import get_logger

logger = get_logger("storefront.auth")

SPECIALS = set("!@#$%^&*()-_=+[]{};:'\",.<>/?\\|`~")

ACCESS_TOKEN_TTL_SECONDS = int(config_settings.ACCESS_TOKEN_EXPIRE_MINUTES) * 60

RESET_TOKEN_TTL_SECONDS = int(config_settings.RESET_TOKEN_EXPIRE_MINUTES) * 60

ACCESS_PURPOSE = "access"

RESET_PURPOSE = "password_reset"
