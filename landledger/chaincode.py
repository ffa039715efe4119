"""
LANDLEDGER Chaincode Surface

The entry points a host ledger runtime calls: ``init``, ``invoke`` (and its
``run`` alias) and ``query``. Function names arrive as strings and are parsed
once into closed enums; after that, dispatch is a table lookup that covers
every member, checked when the chaincode is constructed.

    invoke functions    init, initProperty, transfer
    query functions     readInit, readOwner, readSurvey,
                        readOwnerIndex, readSurveyIndex

Arguments are positional strings, as the shim delivers them. Query results
are canonical JSON bytes; with ``output.quote_records`` enabled, single
record reads are wrapped in single quotes for legacy callers.

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from landledger.codec import canonical_json_bytes, encode_owner, encode_survey, quote_wrap
from landledger.config import LedgerConfig, get_config
from landledger.errors import ArgumentCountError, ChaincodeError, UnknownFunctionError
from landledger.indices import reset_indices
from landledger.observability import (
    AuditLogger,
    LedgerLayer,
    generate_tx_id,
    get_logger,
    reset_tx_id,
    set_tx_id,
)
from landledger.registry import RegistryService
from landledger.store import StateStore, StateTransaction
from landledger.validators import Validators

logger = get_logger("chaincode", LedgerLayer.CHAINCODE)


class Function(Enum):
    """State-changing operations."""
    INIT = "init"
    INIT_PROPERTY = "initProperty"
    TRANSFER = "transfer"

    @classmethod
    def parse(cls, name: str) -> "Function":
        try:
            return cls(name)
        except ValueError:
            raise UnknownFunctionError(name, "invocation") from None


class QueryFunction(Enum):
    """Read-only operations."""
    READ_INIT = "readInit"
    READ_OWNER = "readOwner"
    READ_SURVEY = "readSurvey"
    READ_OWNER_INDEX = "readOwnerIndex"
    READ_SURVEY_INDEX = "readSurveyIndex"

    @classmethod
    def parse(cls, name: str) -> "QueryFunction":
        try:
            return cls(name)
        except ValueError:
            raise UnknownFunctionError(name, "query") from None


def _expect_args(function: str, args: Sequence[str], count: int) -> None:
    if len(args) != count:
        raise ArgumentCountError(function, count, len(args))


class LandRegistryChaincode:
    """Chaincode bound to one state store."""

    def __init__(
        self,
        store: StateStore,
        config: Optional[LedgerConfig] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.registry = RegistryService(store, self.config, audit)

        self._invoke_handlers: Dict[Function, Callable[[Sequence[str]], Optional[bytes]]] = {
            Function.INIT: self._init,
            Function.INIT_PROPERTY: self._init_property,
            Function.TRANSFER: self._transfer,
        }
        self._query_handlers: Dict[QueryFunction, Callable[[Sequence[str]], bytes]] = {
            QueryFunction.READ_INIT: self._read_init,
            QueryFunction.READ_OWNER: self._read_owner,
            QueryFunction.READ_SURVEY: self._read_survey,
            QueryFunction.READ_OWNER_INDEX: self._read_owner_index,
            QueryFunction.READ_SURVEY_INDEX: self._read_survey_index,
        }
        missing = (set(Function) - set(self._invoke_handlers)) | (
            set(QueryFunction) - set(self._query_handlers)
        )
        if missing:
            raise RuntimeError(f"no handler for {sorted(m.value for m in missing)}")

    # ------------------------------------------------------------------
    # Shim entry points
    # ------------------------------------------------------------------

    def init(self, args: Sequence[str]) -> None:
        """Write the init marker and reset both indices."""
        self._call("init", lambda: self._init(args))

    def invoke(self, function: str, args: Sequence[str]) -> Optional[bytes]:
        def call() -> Optional[bytes]:
            return self._invoke_handlers[Function.parse(function)](list(args))
        return self._call(function, call)

    def run(self, function: str, args: Sequence[str]) -> Optional[bytes]:
        """Alias of invoke kept for runtimes that call Run."""
        return self.invoke(function, args)

    def query(self, function: str, args: Sequence[str]) -> bytes:
        def call() -> bytes:
            return self._query_handlers[QueryFunction.parse(function)](list(args))
        return self._call(function, call)

    def _call(self, function: str, call: Callable):
        token = set_tx_id(generate_tx_id())
        try:
            logger.debug("invocation started", function=function)
            return call()
        except ChaincodeError as e:
            logger.warning(
                f"{function} rejected: {e.message}",
                error_code=e.error_code,
                function=function,
            )
            raise
        finally:
            reset_tx_id(token)

    # ------------------------------------------------------------------
    # Invoke handlers
    # ------------------------------------------------------------------

    def _init(self, args: Sequence[str]) -> None:
        _expect_args("init", args, 1)
        value = Validators.validate_int64(args[0], "asset_value").unwrap()

        keys = self.config.keys
        txn = StateTransaction(self.store)
        txn.put(keys.init_marker.get(), str(value).encode("utf-8"))
        reset_indices(txn, keys.owner_index.get(), keys.survey_index.get())
        receipts = txn.commit()
        self.registry.audit.log(
            "init", "marker", keys.init_marker.get(), "success",
            keys_written=[r.key for r in receipts],
        )
        logger.info("chaincode initialised", value=value)
        return None

    def _init_property(self, args: Sequence[str]) -> None:
        _expect_args("initProperty", args, 5)
        reserved = self.config.keys.reserved()
        owner_name = Validators.validate_owner_name(args[0], "owner", reserved).unwrap()
        aadhar = Validators.validate_aadhar(args[1]).unwrap()
        survey_no = Validators.validate_survey_no(args[2]).unwrap()
        location = Validators.validate_location(args[3]).unwrap()
        area = Validators.validate_area(args[4]).unwrap()

        self.registry.register_property(owner_name, aadhar, survey_no, location, area)
        return None

    def _transfer(self, args: Sequence[str]) -> None:
        _expect_args("transfer", args, 3)
        reserved = self.config.keys.reserved()
        seller = Validators.validate_owner_name(args[0], "seller", reserved).unwrap()
        survey_no = Validators.validate_survey_no(args[1]).unwrap()
        buyer = Validators.validate_owner_name(args[2], "buyer", reserved).unwrap()

        self.registry.transfer(seller, survey_no, buyer)
        return None

    # ------------------------------------------------------------------
    # Query handlers
    # ------------------------------------------------------------------

    def _single(self, payload: bytes) -> bytes:
        if self.config.output.quote_records.get():
            return quote_wrap(payload)
        return payload

    def _read_init(self, args: Sequence[str]) -> bytes:
        _expect_args("readInit", args, 1)
        return self.registry.read_init(args[0])

    def _read_owner(self, args: Sequence[str]) -> bytes:
        _expect_args("readOwner", args, 1)
        return self._single(encode_owner(self.registry.read_owner(args[0])))

    def _read_survey(self, args: Sequence[str]) -> bytes:
        _expect_args("readSurvey", args, 1)
        survey_no = Validators.validate_survey_no(args[0]).unwrap()
        return self._single(encode_survey(self.registry.read_survey(survey_no)))

    def _read_owner_index(self, args: Sequence[str]) -> bytes:
        # Arguments are ignored, as the shim has always done for list queries.
        return canonical_json_bytes([o.to_dict() for o in self.registry.list_owners()])

    def _read_survey_index(self, args: Sequence[str]) -> bytes:
        return canonical_json_bytes([s.to_dict() for s in self.registry.list_surveys()])


def registered_functions() -> List[str]:
    """Wire names of every supported operation."""
    return [f.value for f in Function] + [q.value for q in QueryFunction]
