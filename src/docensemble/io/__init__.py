"""docensemble I/O — page image readers and consensus writers."""
from docensemble.io.readers import read_page_images, read_record
from docensemble.io.writers import to_json_dict, write_consensus

__all__ = [
    "read_page_images",
    "read_record",
    "to_json_dict",
    "write_consensus",
]
