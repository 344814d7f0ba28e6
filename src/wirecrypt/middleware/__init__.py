from .transport import TransportEncryption

__all__ = ["TransportEncryption"]
