'''
msgspec base structs shared by every value type that can cross the bridge.

'''
from pathlib import Path
from typing import Any, Self, Type

import msgspec
import polars as pl


def ext_enc_hook(obj: Any) -> Any:
    '''
    Extended encoder hook, lets call arguments carry `pathlib.Path` and
    `polars.Series` values.

    '''
    match obj:
        case Path():
            return str(obj)

        case pl.Series():
            return obj.to_list()

    raise NotImplementedError(
        f'Objects of type {type(obj).__name__} can\'t cross the bridge'
    )


def ext_dec_hook(type: Type, obj: Any) -> Any:
    match type:
        case Path:
            return Path(obj)

    raise NotImplementedError(f'Can\'t decode {obj!r} into {type}')


class _Struct:
    @classmethod
    def from_other(cls, other: Self, **kwargs) -> Self:
        params = other.to_dict()
        params.update(kwargs)
        return cls(**params)

    @classmethod
    def from_json(cls, s: str | bytes) -> Self:
        return msgspec.json.decode(s, type=cls, dec_hook=ext_dec_hook)

    @classmethod
    def from_bytes(cls, raw: bytes) -> Self:
        return msgspec.msgpack.decode(raw, type=cls, dec_hook=ext_dec_hook)

    def encode(self) -> bytes:
        return msgspec.msgpack.encode(self, enc_hook=ext_enc_hook)

    @classmethod
    def convert(cls, obj: Any) -> Self:
        return msgspec.convert(obj, type=cls, dec_hook=ext_dec_hook)

    def to_dict(self) -> dict:
        return msgspec.to_builtins(self, enc_hook=ext_enc_hook)

    def to_json(self) -> str:
        return msgspec.json.encode(self, enc_hook=ext_enc_hook).decode()


class Struct(msgspec.Struct, _Struct): ...


class FrozenStruct(msgspec.Struct, _Struct, frozen=True): ...


class ObjectRef(FrozenStruct, frozen=True, tag='ref'):
    '''
    Wire form of a reference to an object living in the engine process.

    '''
    id: str
