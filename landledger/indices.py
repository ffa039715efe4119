"""Owner and survey index maintenance.

Both indices are ordinary JSON arrays under reserved keys, read and written
through the same store as the records they enumerate. Appends go through a
StateTransaction, so an index update is durable only once the transaction
commits.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from landledger.codec import decode_owner_index, decode_survey_index, encode_index
from landledger.observability import LedgerLayer, get_logger
from landledger.store import StateTransaction

logger = get_logger("indices", LedgerLayer.INDEX)


class _Reader(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...


def read_owner_index(reader: _Reader, index_key: str) -> List[str]:
    return decode_owner_index(reader.get(index_key), index_key)


def read_survey_index(reader: _Reader, index_key: str) -> List[int]:
    return decode_survey_index(reader.get(index_key), index_key)


def add_owner_to_index(txn: StateTransaction, index_key: str, name: str) -> bool:
    """Stage ``name`` into the owner index unless already present. Returns True if staged."""
    index = read_owner_index(txn, index_key)
    if name in index:
        return False
    index.append(name)
    txn.put(index_key, encode_index(index))
    logger.debug("owner indexed", owner=name, size=len(index))
    return True


def add_survey_to_index(txn: StateTransaction, index_key: str, survey_no: int) -> bool:
    """Stage ``survey_no`` into the survey index unless already present. Returns True if staged."""
    index = read_survey_index(txn, index_key)
    if survey_no in index:
        # Only reachable when a record was lost while its index entry stayed.
        logger.warning("survey already indexed", survey_no=survey_no)
        return False
    index.append(survey_no)
    txn.put(index_key, encode_index(index))
    logger.debug("survey indexed", survey_no=survey_no, size=len(index))
    return True


def reset_indices(txn: StateTransaction, owner_index_key: str, survey_index_key: str) -> None:
    """Stage both indices as empty arrays."""
    txn.put(owner_index_key, encode_index([]))
    txn.put(survey_index_key, encode_index([]))
