from pydantic import BaseModel, Field, ConfigDict
import uuid


class UserModel(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    phone_number: str = ""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore"
    )

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else self.name

    @property
    def initials(self) -> str:
        parts = self.name.split()
        if len(parts) >= 2:
            return (parts[0][:1] + parts[1][:1]).upper()
        return self.name[:2].upper()
