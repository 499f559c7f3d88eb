"""Defaults shared by the Joplin API groups."""

from __future__ import annotations

from typing import Literal

DEFAULT_PORT = 41184
DEFAULT_PAGE_SIZE = 100

OrderDir = Literal["ASC", "DESC"]

NOTE_FIELDS = (
    "id,title,body,parent_id,created_time,updated_time,"
    "user_created_time,user_updated_time,is_todo,todo_completed"
)
NOTEBOOK_FIELDS = "id,title,parent_id,created_time,updated_time,user_created_time,user_updated_time"
TAG_FIELDS = "id,title,created_time,updated_time"

RESOURCE_LIST_FIELDS = (
    "id,title,mime,filename,size,created_time,updated_time,file_extension,ocr_text,ocr_status"
)
RESOURCE_FIELDS = (
    "id,title,mime,filename,size,file_extension,created_time,updated_time,"
    "blob_updated_time,is_shared,share_id,ocr_text,ocr_status"
)
NOTE_RESOURCE_FIELDS = "id,title,mime,filename,size,file_extension,created_time,updated_time"
RESOURCE_NOTE_FIELDS = "id,title,parent_id,created_time,updated_time"

REVISION_LIST_FIELDS = "id,parent_id,item_type,item_id,item_updated_time,created_time,updated_time"
REVISION_FIELDS = (
    "id,parent_id,item_type,item_id,item_updated_time,title_diff,body_diff,metadata_diff,"
    "encryption_applied,encryption_cipher_text,created_time,updated_time"
)
