"""
Contains JSON schema for the file read by Prometheus' file-based service
discovery.

Everything is validated against it before being written to disk so that we
only ever hand Prometheus JSON it can understand.
"""

NON_EMPTY_STRING = {"type": "string", "minLength": 1}

TARGETS_LIST_SCHEMA = {
    "description": "[<host>[:<port>], ...] to scrape for metrics",
    "type": "array",
    "minItems": 1,
    "items": NON_EMPTY_STRING,
}

LABELS_DICT_SCHEMA = {
    "description": "Format of the labels object",
    "type": "object",
    "propertyNames": {"pattern": "^[a-zA-Z_][a-zA-Z0-9_]*$"},
    "additionalProperties": {"type": "string"},
}

TARGET_GROUP_OBJECT_SCHEMA = {
    "description": "Format of the elements of the FILE_SD_SCHEMA array",
    "type": "object",
    "properties": {"targets": TARGETS_LIST_SCHEMA, "labels": LABELS_DICT_SCHEMA},
    "required": ["targets", "labels"],
    "additionalProperties": False,
}

FILE_SD_SCHEMA = {
    "description": "Format of the contents of a file_sd target file",
    "type": "array",
    "items": TARGET_GROUP_OBJECT_SCHEMA,
}
