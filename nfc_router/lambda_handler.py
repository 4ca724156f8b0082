"""AWS Lambda entry point.

Mangum translates API Gateway / Function URL events into ASGI, letting
the FastAPI app run unchanged on Lambda. Lifespan stays off, so the
dispatcher is built lazily on the first request of each cold start.
"""

from mangum import Mangum

from nfc_router.logging.audit import setup_logging
from nfc_router.main import app

setup_logging()

handler = Mangum(app, lifespan="off")
