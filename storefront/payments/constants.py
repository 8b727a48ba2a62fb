from storefront.common.logging_setup import get_logger

logger = get_logger("storefront.payments")

SIGNATURE_HEADER = "x-paystack-signature"

CHARGE_SUCCESS = "charge.success"

CHARGE_FAILED = "charge.failed"

HANDLED_EVENTS = (CHARGE_SUCCESS, CHARGE_FAILED)
