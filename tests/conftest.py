import os
import tempfile

# konfiguracja testowa MUSI byc ustawiona przed importem pakietu supermarket
_DB_PATH = os.path.join(tempfile.gettempdir(), f"supermarket_test_{os.getpid()}.db")

os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["DELIVERY_FEES"] = "standard:1.00,express:4.50,pickup:0.00"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["TRACK_INVENTORY"] = "true"
os.environ["GUEST_ORDER_CLAIM_DAYS"] = "30"
os.environ["SEED_DATA"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
