"""
Contains JSON schema for the optional Hetzner configuration file.

The file may be written in YAML, JSON or TOML, it is validated after parsing.
"""

from .target_group_schema import NON_EMPTY_STRING

CREDENTIAL_SCHEMA = {
    "description": "Robot webservice credentials for a single project",
    "type": "object",
    "properties": {
        "project": NON_EMPTY_STRING,
        "username": NON_EMPTY_STRING,
        "password": NON_EMPTY_STRING,
    },
    "required": ["project", "username", "password"],
    "additionalProperties": False,
}

CONFIG_FILE_SCHEMA = {
    "description": "Format of the Hetzner configuration file",
    "type": "object",
    "properties": {"credentials": {"type": "array", "items": CREDENTIAL_SCHEMA}},
    "required": ["credentials"],
}
