import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_PATH = os.getenv("DATABASE_PATH", "medfile.db")
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "true").lower() in ("1", "true", "yes", "on")

# Imaging: public storage hosts whose DICOM objects must go through the proxy
STORAGE_PUBLIC_HOSTS = [
    host.strip().lower()
    for host in os.getenv("STORAGE_PUBLIC_HOSTS", "firebasestorage.googleapis.com").split(",")
    if host.strip()
]
DICOM_PROXY_PREFIX = os.getenv("DICOM_PROXY_PREFIX", "/storage-proxy")
DICOM_EXTENSIONS = tuple(
    ext.strip().lower()
    for ext in os.getenv("DICOM_EXTENSIONS", ".dcm,.dicom").split(",")
    if ext.strip()
)

# Upper bound for a single collection fetch before it is reported as failed
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))

EXPORT_FILENAME_PREFIX = os.getenv("EXPORT_FILENAME_PREFIX", "medical_record")
