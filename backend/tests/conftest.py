import os
import tempfile

# settings are read at import time; point them at throwaway locations first
_tmp = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_tmp, 'test.db')}")
os.environ.setdefault("CART_STORAGE_DIR", os.path.join(_tmp, "carts"))
os.environ.setdefault("LOG_LEVEL", "DEBUG")
