#!/usr/bin/env python3
"""
Report funding requests whose stored document references no longer resolve.

Walks every funding request, tries to resolve each assignment and "other"
reference against the upload roots, and prints one line per reference that
points at nothing. Nothing is modified.

Usage:
    python scripts/check_attachments.py            # text report
    python scripts/check_attachments.py --json     # one JSON object per fault
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, List

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy import select  # noqa: E402

from app.core.errors import NotFound  # noqa: E402
from app.core.logging import configure_logging  # noqa: E402
from app.core.settings import settings  # noqa: E402
from app.db.session import Database  # noqa: E402
from app.models.funding_request import FundingRequest  # noqa: E402
from app.services.attachments import AttachmentKind, AttachmentSet  # noqa: E402
from app.services.storage.service import DocumentStorage, get_document_storage  # noqa: E402


def find_faults(record: FundingRequest, storage: DocumentStorage) -> List[Dict[str, object]]:
    faults = []
    for kind in (AttachmentKind.ASSIGNMENT, AttachmentKind.OTHER):
        documents = AttachmentSet.for_record(record, kind).documents
        for index, reference in enumerate(documents):
            if not reference:
                continue
            try:
                storage.resolve(reference)
            except NotFound as exc:
                faults.append(
                    {
                        "request_id": str(record.id),
                        "kind": kind.value,
                        "index": index,
                        "reference": reference,
                        "error": exc.message,
                    }
                )
    return faults


async def run(as_json: bool) -> int:
    database = Database(settings.database_url)
    storage = get_document_storage()
    total = 0
    try:
        async with database.session() as session:
            result = await session.stream_scalars(select(FundingRequest).order_by(FundingRequest.created_at))
            async for record in result:
                for fault in find_faults(record, storage):
                    total += 1
                    if as_json:
                        print(json.dumps(fault))
                    else:
                        print(
                            f"{fault['request_id']} {fault['kind']}[{fault['index']}] "
                            f"{fault['reference']}: {fault['error']}"
                        )
    finally:
        await database.dispose()
    if not as_json:
        print(f"{total} missing document(s)")
    return 1 if total else 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--json", action="store_true", help="emit one JSON object per fault")
    args = parser.parse_args()
    configure_logging()
    return asyncio.run(run(args.json))


if __name__ == "__main__":
    raise SystemExit(main())
