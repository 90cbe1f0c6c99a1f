from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str = ""
    status: str = "active"  # "active", "inactive", "deleted"

    @property
    def is_active(self) -> bool:
        return self.status == "active"
