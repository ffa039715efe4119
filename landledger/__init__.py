"""
LANDLEDGER — Land Ownership Registry Chaincode

Owner and survey records kept as key/value state inside a permissioned
ledger. The host runtime owns ordering, consensus and durability; this
package owns how records are keyed, how an owner's survey list and a
survey's owner log stay consistent across dependent reads and writes, and
how the owner and survey indices are kept free of duplicates.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────┐
    │  chaincode.py   init / invoke / query, closed function enums    │
    │  cli.py         command-line host over a file-backed store      │
    ├─────────────────────────────────────────────────────────────────┤
    │  registry.py    register_property, transfer, reads              │
    │  indices.py     owner index, survey index                       │
    │  health.py      invariant checks against live state             │
    ├─────────────────────────────────────────────────────────────────┤
    │  codec.py       records, key scheme, JSON + JSON Schema         │
    │  store.py       StateStore, staged StateTransaction             │
    │  validators.py  argument parsing                                │
    ├─────────────────────────────────────────────────────────────────┤
    │  config.py  observability.py  errors.py                         │
    └─────────────────────────────────────────────────────────────────┘

Records
───────

    Owner    key = name                 {"name", "aadhar", "surveyNumbers"}
    Survey   key = str(surveyNo)        {"surveyNo", "area", "location", "owners"}
    indices  keys = _ownerIndex, _surveyIndex (JSON arrays)
    marker   key = abc

Copyright (c) 2026 Landledger. All rights reserved.
"""

__version__ = "0.3.0"


def __getattr__(name):
    """Lazy import of the public API."""

    if name in ("LandRegistryChaincode", "Function", "QueryFunction", "registered_functions"):
        from landledger import chaincode
        return getattr(chaincode, name)

    if name in ("RegistryService", "TransactionResult"):
        from landledger import registry
        return getattr(registry, name)

    if name in ("Owner", "Survey", "encode_owner", "encode_survey", "decode_owner", "decode_survey"):
        from landledger import codec
        return getattr(codec, name)

    if name in ("StateStore", "InMemoryStateStore", "JsonFileStateStore", "StateTransaction",
                "StoreError", "WriteReceipt"):
        from landledger import store
        return getattr(store, name)

    if name in ("ChaincodeError", "ArgumentCountError", "ArgumentFormatError", "UnknownFunctionError",
                "NotFoundError", "ConflictError", "PreconditionError", "StoreWriteError"):
        from landledger import errors
        return getattr(errors, name)

    if name in ("RegistryHealthChecker", "HealthReport", "HealthStatus"):
        from landledger import health
        return getattr(health, name)

    if name in ("ConfigManager", "LedgerConfig", "get_config", "get_config_manager"):
        from landledger import config
        return getattr(config, name)

    raise AttributeError(f"module 'landledger' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Chaincode
    "LandRegistryChaincode",
    "Function",
    "QueryFunction",
    "registered_functions",
    # Registry
    "RegistryService",
    "TransactionResult",
    "Owner",
    "Survey",
    # Store
    "StateStore",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "StateTransaction",
    # Errors
    "ChaincodeError",
    "ArgumentCountError",
    "ArgumentFormatError",
    "UnknownFunctionError",
    "NotFoundError",
    "ConflictError",
    "PreconditionError",
    "StoreWriteError",
    # Health
    "RegistryHealthChecker",
    "HealthReport",
    "HealthStatus",
    # Config
    "ConfigManager",
    "LedgerConfig",
    "get_config",
]
