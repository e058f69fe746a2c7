import asyncio
import uuid
from functools import partial
from typing import List, Optional

from google.cloud.firestore_v1.base_query import FieldFilter


async def firestore_run(fn, *args, **kwargs):
    """
    Run blocking Firestore SDK calls safely in async code.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        partial(fn, *args, **kwargs)
    )


def new_id() -> str:
    return str(uuid.uuid4())


async def get_document(db, collection: str, doc_id: str) -> Optional[dict]:
    """Fetch one document as a dict (with ``_id``), or None when missing."""
    if not doc_id:
        return None
    snap = await firestore_run(db.collection(collection).document(doc_id).get)
    if not snap.exists:
        return None
    data = snap.to_dict() or {}
    data.setdefault("_id", snap.id)
    return data


async def find_documents(db, collection: str, *filters, order_by: Optional[str] = None,
                         descending: bool = False, limit: Optional[int] = None) -> List[dict]:
    """
    Equality/range query. ``filters`` are (field, op, value) tuples.
    """
    query = db.collection(collection)
    for field, op, value in filters:
        query = query.where(filter=FieldFilter(field, op, value))
    if order_by:
        direction = "DESCENDING" if descending else "ASCENDING"
        query = query.order_by(order_by, direction=direction)
    if limit:
        query = query.limit(limit)

    docs = await firestore_run(query.get)
    results = []
    for snap in docs:
        data = snap.to_dict() or {}
        data.setdefault("_id", snap.id)
        results.append(data)
    return results


async def find_one(db, collection: str, *filters) -> Optional[dict]:
    docs = await find_documents(db, collection, *filters, limit=1)
    return docs[0] if docs else None
