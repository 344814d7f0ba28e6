from pydantic import BaseModel, ConfigDict


class SerdeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json")

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")
