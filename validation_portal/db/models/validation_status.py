import enum


class ValidationStatus(str, enum.Enum):
    # KoboToolbox validation status uids, stored verbatim in submission partitions.
    APPROVED = "validation_status_approved"
    NOT_APPROVED = "validation_status_not_approved"
    ON_HOLD = "validation_status_on_hold"

    @classmethod
    def parse(cls, value) -> "ValidationStatus | None":
        try:
            return cls(str(value).strip())
        except ValueError:
            return None


STATUS_LABELS = {
    ValidationStatus.APPROVED: "approved",
    ValidationStatus.NOT_APPROVED: "not_approved",
    ValidationStatus.ON_HOLD: "on_hold",
}
