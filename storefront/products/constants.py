from storefront.common.logging_setup import get_logger
from storefront.config.settings import config_settings

logger = get_logger("storefront.products")

DEFAULT_PAGE_SIZE = 18

MAX_PAGE_SIZE = 100

LOW_STOCK_THRESHOLD = config_settings.LOW_STOCK_THRESHOLD
