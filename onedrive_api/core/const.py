"""Constants for the OneDrive client."""

import os

GRAPH_URL = os.getenv("ONEDRIVE_GRAPH_URL", "https://graph.microsoft.com/v1.0")
DEFAULT_DRIVE = "/me/drive"

# Upload sessions require every chunk except the last to be a multiple of this
UPLOAD_BLOCK_SIZE = 320 * 1024
CHUNK_SIZE = int(os.getenv("ONEDRIVE_UPLOAD_CHUNK_SIZE", str(UPLOAD_BLOCK_SIZE)))

# Simple (single request) uploads are limited to 4MB by the service
SIMPLE_UPLOAD_MAX_BYTES = 4 * 1024 * 1024

UPLOAD_MAX_RETRIES = 5
UPLOAD_BASE_DELAY_SECONDS = 0.5
UPLOAD_BACKOFF_MULTIPLIER = 2.0
UPLOAD_REQUEST_TIMEOUT_SECONDS = 300

ACCEPTED_STATUS_CODE = 202
COMPLETED_STATUS_CODES = {200, 201}

CONFIG_ENCODING = "utf-8"
