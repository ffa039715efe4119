"""
LANDLEDGER Registry Service

Read-modify-write logic for Owner and Survey records and their indices.

Each transaction follows the same shape:

    1. read every record it depends on
    2. check preconditions; raise before anything is staged
    3. stage the mutated records in a StateTransaction
    4. commit, writing keys in a fixed order

So a rejected call never writes, and a store failure during commit reports
exactly which keys already landed (StoreWriteError.landed).

Write order:

    register_property   owner, owner index, survey, survey index
    transfer            seller, buyer, survey, owner index (new buyer only)

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from landledger.codec import (
    Owner,
    Survey,
    decode_owner,
    decode_survey,
    encode_owner,
    encode_survey,
    owner_key,
    survey_key,
)
from landledger.config import KeysConfig, LedgerConfig, get_config
from landledger.errors import ConflictError, NotFoundError, PreconditionError
from landledger.indices import (
    add_owner_to_index,
    add_survey_to_index,
    read_owner_index,
    read_survey_index,
)
from landledger.observability import AuditLogger, LedgerLayer, get_logger, timed_operation
from landledger.store import StateStore, StateTransaction, WriteReceipt

logger = get_logger("registry", LedgerLayer.REGISTRY)


@dataclass
class TransactionResult:
    """Outcome of a committed registry transaction."""
    operation: str
    receipts: List[WriteReceipt]

    @property
    def keys_written(self) -> List[str]:
        return [r.key for r in self.receipts]


class RegistryService:
    """Owner/survey registry over a StateStore."""

    def __init__(
        self,
        store: StateStore,
        config: Optional[LedgerConfig] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.audit = audit or AuditLogger(
            get_logger("audit", LedgerLayer.REGISTRY),
            enabled=self.config.observability.audit_enabled.get(),
        )

    @property
    def keys(self) -> KeysConfig:
        return self.config.keys

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    def _get_owner(self, reader, name: str) -> Optional[Owner]:
        return decode_owner(reader.get(owner_key(name)), name)

    def _get_survey(self, reader, survey_no: int) -> Optional[Survey]:
        return decode_survey(reader.get(survey_key(survey_no)), survey_no)

    def _commit(self, txn: StateTransaction, operation: str, resource_type: str, resource_id: str,
                **details) -> TransactionResult:
        try:
            receipts = txn.commit()
        except Exception as e:
            self.audit.log(operation, resource_type, resource_id, "failure", error=str(e), **details)
            raise
        result = TransactionResult(operation=operation, receipts=receipts)
        self.audit.log(operation, resource_type, resource_id, "success",
                       keys_written=result.keys_written, **details)
        return result

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @timed_operation(logger, "register_property")
    def register_property(
        self,
        owner_name: str,
        aadhar: int,
        survey_no: int,
        location: str,
        area: int,
    ) -> TransactionResult:
        """
        Register a new survey under an owner.

        An existing owner keeps the aadhar stored first; the supplied one is
        only used for a new owner or one whose aadhar was never set. A survey
        number that is already registered is rejected with ConflictError.
        """
        txn = StateTransaction(self.store)

        owner = self._get_owner(txn, owner_name)
        is_new_owner = owner is None
        if owner is None:
            owner = Owner(name=owner_name, aadhar=aadhar)
        elif owner.aadhar is None:
            owner.aadhar = aadhar
        elif owner.aadhar != aadhar:
            logger.info("stored aadhar kept for existing owner", owner=owner_name)

        if self._get_survey(txn, survey_no) is not None:
            raise ConflictError("Property already exists", key=survey_key(survey_no))

        if owner.holds(survey_no):
            # Stale owner entry for a survey whose record is gone; do not duplicate it.
            logger.warning("owner already lists unregistered survey", owner=owner_name, survey_no=survey_no)
        else:
            owner.add_survey(survey_no)

        survey = Survey(survey_no=survey_no, area=area, location=location, owners=[owner_name])

        txn.put(owner_key(owner_name), encode_owner(owner))
        add_owner_to_index(txn, self.keys.owner_index.get(), owner_name)
        txn.put(survey_key(survey_no), encode_survey(survey))
        add_survey_to_index(txn, self.keys.survey_index.get(), survey_no)

        result = self._commit(
            txn, "register_property", "survey", survey_key(survey_no),
            owner=owner_name, new_owner=is_new_owner,
        )
        logger.info("property registered", owner=owner_name, survey_no=survey_no)
        return result

    @timed_operation(logger, "transfer")
    def transfer(self, seller_name: str, survey_no: int, buyer_name: str) -> TransactionResult:
        """
        Move a survey from seller to buyer.

        The seller must currently list the survey. The buyer is created on
        the fly if it has no record yet (with no aadhar) and is added to the
        owner index. The survey's owner log gains the buyer's name; earlier
        names stay.
        """
        txn = StateTransaction(self.store)

        seller = self._get_owner(txn, seller_name)
        if seller is None or not seller.holds(survey_no):
            raise PreconditionError(
                f"{seller_name} does not hold survey number {survey_no}"
            )

        survey = self._get_survey(txn, survey_no)
        if survey is None:
            raise NotFoundError("Survey number doesn't exist", key=survey_key(survey_no))

        seller.remove_survey(survey_no)
        txn.put(owner_key(seller_name), encode_owner(seller))

        # Read through the transaction so a self-transfer sees the staged seller.
        buyer = self._get_owner(txn, buyer_name)
        is_new_buyer = buyer is None
        if buyer is None:
            buyer = Owner(name=buyer_name)
        buyer.add_survey(survey_no)
        txn.put(owner_key(buyer_name), encode_owner(buyer))

        survey.owners.append(buyer_name)
        txn.put(survey_key(survey_no), encode_survey(survey))

        if is_new_buyer:
            add_owner_to_index(txn, self.keys.owner_index.get(), buyer_name)

        result = self._commit(
            txn, "transfer", "survey", survey_key(survey_no),
            seller=seller_name, buyer=buyer_name,
        )
        logger.info("property transferred", seller=seller_name, buyer=buyer_name, survey_no=survey_no)
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_init(self, key: Optional[str] = None) -> bytes:
        if key is None:
            key = self.keys.init_marker.get()
        value = self.store.get(key)
        if value is None:
            raise NotFoundError("Couldn't find init value, Please pass correct key", key=key)
        return value

    def read_owner(self, name: str) -> Owner:
        owner = self._get_owner(self.store, name)
        if owner is None:
            raise NotFoundError("Owner doesn't exist", key=owner_key(name))
        return owner

    def read_survey(self, survey_no: int) -> Survey:
        survey = self._get_survey(self.store, survey_no)
        if survey is None:
            raise NotFoundError("Survey number doesn't exist", key=survey_key(survey_no))
        return survey

    def owner_names(self) -> List[str]:
        return read_owner_index(self.store, self.keys.owner_index.get())

    def survey_numbers(self) -> List[int]:
        return read_survey_index(self.store, self.keys.survey_index.get())

    def list_owners(self) -> List[Owner]:
        """Every indexed owner in index order; members without a usable record are skipped."""
        owners = []
        for name in self.owner_names():
            owner = self._get_owner(self.store, name)
            if owner is None:
                logger.warning("indexed owner has no record", owner=name)
                continue
            owners.append(owner)
        return owners

    def list_surveys(self) -> List[Survey]:
        """Every indexed survey in index order; members without a usable record are skipped."""
        surveys = []
        for survey_no in self.survey_numbers():
            survey = self._get_survey(self.store, survey_no)
            if survey is None:
                logger.warning("indexed survey has no record", survey_no=survey_no)
                continue
            surveys.append(survey)
        return surveys
