import re
import secrets

GROUPS = 3
GROUP_BYTES = 2

LICENSE_CODE_PATTERN = re.compile(r"^[0-9A-F]{4}(-[0-9A-F]{4}){2}$")


def generate_license_code() -> str:
    """Random code of grouped uppercase hex blocks, e.g. ``AB12-CD34-EF56``."""
    return "-".join(secrets.token_hex(GROUP_BYTES).upper() for _ in range(GROUPS))
