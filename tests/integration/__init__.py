import os

GCP_PROJECT_ID = os.environ.get("GCP_PROJECT_ID")
