"""Service error payload models."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ErrorDetail:
    """ARM error object.

    ARM services wrap errors as ``{"error": {"code", "message", "target",
    "details": [...]}}``. Older data-plane services use
    ``{"odata.error": {"code", "message": {"value": ...}}}``; both shapes and a
    bare top-level error object are accepted.
    """

    code: str | None = None
    message: str | None = None
    target: str | None = None
    details: list["ErrorDetail"] = field(default_factory=list)
    inner_error: "ErrorDetail | None" = None
    additional_info: list[dict[str, Any]] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "ErrorDetail | None":
        """Parse an error object or an envelope containing one.

        Returns:
            ErrorDetail, or None if the payload does not look like an error
        """
        if not isinstance(data, dict):
            return None

        for envelope in ("error", "odata.error"):
            if isinstance(data.get(envelope), dict):
                data = data[envelope]
                break
        else:
            if "code" not in data and "message" not in data:
                return None

        message = data.get("message")
        if isinstance(message, dict):
            # odata.error carries {"lang": ..., "value": ...}
            message = message.get("value")

        details = [d for d in (cls.from_dict(item) for item in data.get("details") or []) if d is not None]
        inner = data.get("innererror") or data.get("innerError")

        return cls(
            code=_as_str(data.get("code")),
            message=_as_str(message),
            target=_as_str(data.get("target")),
            details=details,
            inner_error=cls.from_dict(inner) if isinstance(inner, dict) else None,
            additional_info=data.get("additionalInfo") if isinstance(data.get("additionalInfo"), list) else None,
        )

    def code_chain(self) -> list[str]:
        """Error codes depth-first, outer-most first."""
        codes = [self.code] if self.code else []
        if self.inner_error:
            codes.extend(self.inner_error.code_chain())
        for detail in self.details:
            codes.extend(detail.code_chain())
        return codes

    def to_exception_message(self) -> str:
        """Flatten the error tree into a readable multi-line message."""
        lines = []

        if self.code and self.message:
            lines.append(f"{self.code}: {self.message}")
        elif self.code or self.message:
            lines.append(self.code or self.message)

        if self.target:
            lines.append(f"Target: {self.target}")

        for detail in self.details:
            for line in detail.to_exception_message().splitlines():
                lines.append(f"  {line}")

        if self.inner_error and self.inner_error.code:
            lines.append(f"Inner error: {self.inner_error.code}")

        return "\n".join(lines) if lines else "Unknown service error"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.target:
            data["target"] = self.target
        if self.details:
            data["details"] = [detail.to_dict() for detail in self.details]
        if self.inner_error:
            data["innererror"] = self.inner_error.to_dict()
        if self.additional_info:
            data["additionalInfo"] = self.additional_info
        return data


def _as_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)
