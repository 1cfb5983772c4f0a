from .cif import Cif

__all__ = ["Cif"]
