"""
Firestore query helpers.

Positional query.where(field, op, value) is deprecated in google-cloud-firestore
and logs a UserWarning on every call; the delivery status callback runs for
every officer message, so queries go through FieldFilter instead.
"""

from google.cloud.firestore_v1.base_query import FieldFilter


def where_filter(query, field_path: str, op_string: str, value):
    """
    Add one field filter to a collection or query.

    Usage:
        query = where_filter(collection, "provider_message_ids", "array_contains", sid)
    """
    return query.where(filter=FieldFilter(field_path, op_string, value))
