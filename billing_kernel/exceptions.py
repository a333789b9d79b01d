"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Billing errors reach request handlers that must turn them into responses
(404 for an unknown client, 400/409 for bad override data).  Matching on
message text is fragile, so every error here:

  1. Has its own class (catch by type, not message)
  2. Carries a ``code`` class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (facility id, year, month, ...)

Example:
    try:
        registry.create_override(facility_id, year=2027, month=3, ...)
    except DuplicateOverrideError as e:
        return {"error": e.code, "facility": e.facility_profile_id}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- ConfigurationError
    |   +-- InvalidPauseWindowError
    |   +-- DuplicateOverrideError
    |   +-- InvalidBillingPeriodError
    |   +-- InvalidTaxModeError
    |   +-- InvalidScheduleError
    |
    +-- NotFoundError
    |   +-- ClientNotFoundError
    |   +-- FacilityNotFoundError
    |   +-- OverrideNotFoundError
    |
    +-- CurrencyMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_PAUSE_WINDOW        | Half-open or inverted pause day range
                | DUPLICATE_OVERRIDE          | Override exists for (facility, year, month)
                | INVALID_BILLING_PERIOD      | Month outside 1-12
                | INVALID_TAX_MODE            | Client default mode cannot be resolved
                | INVALID_SCHEDULE            | Weekday index or frequency out of range
----------------|-----------------------------|-----------------------------------------
Not found       | CLIENT_NOT_FOUND            | Client id unknown
                | FACILITY_NOT_FOUND          | Facility profile id unknown
                | OVERRIDE_NOT_FOUND          | Override id unknown
----------------|-----------------------------|-----------------------------------------
Currency        | CURRENCY_MISMATCH           | Arithmetic across currency labels

All of these are deterministic data-integrity errors.  None is transient,
so nothing in the kernel retries on them.
"""


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Configuration errors


class ConfigurationError(BillingKernelError):
    """Stored billing configuration is internally inconsistent."""

    code: str = "CONFIGURATION_ERROR"


class InvalidPauseWindowError(ConfigurationError):
    """
    Pause window is half-open, inverted, or outside 1-31.

    Write paths reject these; the resolver raises this when one slips
    through rather than guessing which day was meant.
    """

    code: str = "INVALID_PAUSE_WINDOW"

    def __init__(
        self,
        pause_start_day: int | None,
        pause_end_day: int | None,
        reason: str,
        facility_profile_id: str | None = None,
    ):
        self.pause_start_day = pause_start_day
        self.pause_end_day = pause_end_day
        self.reason = reason
        self.facility_profile_id = facility_profile_id
        where = f" for facility {facility_profile_id}" if facility_profile_id else ""
        super().__init__(
            f"Invalid pause window {pause_start_day!r}-{pause_end_day!r}{where}: {reason}"
        )


class DuplicateOverrideError(ConfigurationError):
    """A monthly override already exists for this facility and month."""

    code: str = "DUPLICATE_OVERRIDE"

    def __init__(self, facility_profile_id: str, year: int, month: int):
        self.facility_profile_id = facility_profile_id
        self.year = year
        self.month = month
        super().__init__(
            f"Override already exists for facility {facility_profile_id} "
            f"in {year}-{month:02d}"
        )


class InvalidBillingPeriodError(ConfigurationError):
    """Requested billing month is not a calendar month."""

    code: str = "INVALID_BILLING_PERIOD"

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"Month must be between 1 and 12, got {year}-{month}")


class InvalidTaxModeError(ConfigurationError):
    """Tax behavior could not be resolved to a concrete tax mode."""

    code: str = "INVALID_TAX_MODE"

    def __init__(self, tax_mode: str, reason: str):
        self.tax_mode = tax_mode
        self.reason = reason
        super().__init__(f"Invalid tax mode {tax_mode!r}: {reason}")


class InvalidScheduleError(ConfigurationError):
    """Weekday set or weekly frequency is out of range."""

    code: str = "INVALID_SCHEDULE"

    def __init__(self, field_name: str, value: object, reason: str):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field_name} {value!r}: {reason}")


# Not-found errors


class NotFoundError(BillingKernelError):
    """Base exception for unresolvable ids."""

    code: str = "NOT_FOUND"


class ClientNotFoundError(NotFoundError):
    """Client with given id was not found."""

    code: str = "CLIENT_NOT_FOUND"

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class FacilityNotFoundError(NotFoundError):
    """Facility profile with given id was not found."""

    code: str = "FACILITY_NOT_FOUND"

    def __init__(self, facility_profile_id: str, client_id: str | None = None):
        self.facility_profile_id = facility_profile_id
        self.client_id = client_id
        super().__init__(f"Facility not found: {facility_profile_id}")


class OverrideNotFoundError(NotFoundError):
    """Monthly override with given id was not found."""

    code: str = "OVERRIDE_NOT_FOUND"

    def __init__(self, override_id: str):
        self.override_id = override_id
        super().__init__(f"Monthly override not found: {override_id}")


# Currency


class CurrencyMismatchError(BillingKernelError):
    """Arithmetic attempted across two currency labels."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, left: str, right: str, operation: str):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(
            f"Cannot {operation} Money with different currencies: {left} and {right}"
        )
