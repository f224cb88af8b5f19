from .lang import Bindcode
from .context.holders import INTRUSIVE, SHARED, UNMANAGED, Counted, SharedFromThis, ControlBlock, SharedPtr, Holder, Handle
from .context.graph import UPCAST, DECLARED
from .context.objects import Proxy
from .context.typing import Dynamic
from .context.binder import Func, Overloads
from .context.exceptions import (
    BindcodeError, RegistrationError, ConversionError, BindError, AmbiguousOrNoConversion,
    DoubleOwnershipViolation, UseAfterRelease,
)

__version__ = "0.1"
