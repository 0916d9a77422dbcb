"""
Constants and exit codes for teamcity-dl.
"""

DEFAULT_BASE_URL = "https://teamcity.cockroachdb.com"

# Environment variables, first match wins.
TOKEN_ENV_VARS = ("TEAMCITY_TOKEN", "TOKEN")
BASE_URL_ENV_VARS = ("TEAMCITY_URL", "BASE_URL")
LOG_LEVEL_ENV_VAR = "TEAMCITY_DL_LOG_LEVEL"

DOWNLOAD_TIMEOUT_SECONDS = 10 * 60
DOWNLOAD_CHUNK_SIZE = 64 * 1024
EXTRACT_CHUNK_SIZE = 1024 * 1024
MAX_ERROR_BODY_BYTES = 4096

ARTIFACTS_PATH_TEMPLATE = "/app/rest/builds/id:{build_id}/artifacts/archived"
ARCHIVE_NAME_TEMPLATE = "build-{build_id}-artifacts.zip"
EXTRACT_DIR_TEMPLATE = "build-{build_id}"


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    UNEXPECTED_ERROR = 1
    USAGE = 2
    CONFIGURATION = 3
    NETWORK = 4
    HTTP_STATUS = 5
    ARCHIVE_FORMAT = 6
    UNSAFE_ARCHIVE_PATH = 7
    FILESYSTEM = 8
