from bindcode.context.exceptions import UseAfterRelease
from bindcode.context.holders import SharedPtr, UNMANAGED
from bindcode import utils
import builtins
import threading

class Proxy:
    """
        DESIGN:
        the host works with the native object as if it had it
        the proxy is transparent, attribute access goes to the object
        its own state is kept under dunder names so it can't shadow the object's:
            __native__    the object
            __type__      most derived registered type
            __handles__   one share per host reference
            __registry__  where the proxy is registered, None for unmanaged

        HOST REFERENCES:
        each crossing of the boundary is a host reference
        __retain__ adds one (shared from the first handle), __release__ gives one back
        releasing the last one unregisters the proxy, the proxy is then dead
        the object itself dies when its count does, which native code may still be holding up

        a proxy is a context manager releasing one reference on exit
    """
    def __init__(self, obj, type, handle, registry=None):
        self.__dict__["__native__"] = obj
        self.__dict__["__type__"] = type
        self.__dict__["__handles__"] = [handle]
        self.__dict__["__registry__"] = registry
        self.__dict__["__lock__"] = registry.lock if registry is not None else threading.RLock()
    def __getattr__(self, name):
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        if not self.__dict__["__handles__"]:
            raise UseAfterRelease("attribute {} of a released proxy".format(name))
        return builtins.getattr(self.__dict__["__native__"], name)
    def __setattr__(self, name, value):
        if name in self.__dict__:
            raise AttributeError("can't set {} of proxy".format(name))
        if not self.__dict__["__handles__"]:
            raise UseAfterRelease("attribute {} of a released proxy".format(name))
        builtins.setattr(self.__dict__["__native__"], name, value)
    def __repr__(self):
        state = "" if self.__alive__ else " (released)"
        return "<proxy{} {!r}>".format(state, self.__native__)
    def __enter__(self):
        return self
    def __exit__(self, exc_type, exc, tb):
        self.__release__()

    @property
    def __alive__(self):
        return bool(self.__handles__)
    @property
    def __holder__(self):
        return self.__handles__[0].holder if self.__handles__ else None
    @property
    def __block__(self):
        return self.__handles__[0].block if self.__handles__ else None
    @property
    def __address__(self):
        return id(self.__native__)
    @property
    def __refs__(self):
        return len(self.__handles__)
    def __handle__(self):
        if not self.__handles__:
            raise UseAfterRelease("{!r} has no references left".format(self))
        return self.__handles__[0]

    def __retain__(self):
        with self.__lock__:
            handle = self.__handle__()
            self.__handles__.append(handle.holder.share(handle))
        return self
    def __release__(self):
        """
            returns True if the native object was destroyed
        """
        with self.__lock__:
            handle = self.__handle__()
            self.__handles__.pop()
            if not self.__handles__ and self.__registry__ is not None:
                self.__registry__.discard(self.__address__, self)
            return handle.holder.release(handle)

def add_objects(context):
    context.Proxy = Proxy

    def known(cls):
        return cls in context.holders or context.graph.known(cls)
    def runtime_type(value):
        """
            most derived registered type of a value

            a value of an unregistered subclass is seen as its nearest registered base
        """
        if isinstance(value, Proxy):
            return value.__type__
        if isinstance(value, SharedPtr):
            value = value.obj
        for type in builtins.type(value).__mro__:
            if known(type):
                return type
        return builtins.type(value)
    def wrap(value):
        """
            native value -> host value

            held objects become proxies, one per address
            anything else crosses as it is
        """
        if isinstance(value, Proxy):
            return value
        obj, block = value, None
        if isinstance(value, SharedPtr):
            obj, block = value.obj, value.block
        cls = runtime_type(obj)
        holder = context.holder_of(cls)
        if holder is None:
            return obj
        if holder.strategy == UNMANAGED:
            return Proxy(obj, cls, holder.acquire(obj))
        return context.registry.lookup_or_insert(
            id(obj),
            lambda block: Proxy(obj, cls, holder.acquire(obj, block), context.registry),
            block,
        )
    def unwrap(value):
        if isinstance(value, Proxy):
            return value.__handle__().obj
        if isinstance(value, SharedPtr):
            return value.obj
        return value
    def new(cls, *args, **kwargs):
        """
            constructs a native object and hands it to the host
        """
        return wrap(cls(*args, **kwargs))
    def release(proxy):
        return proxy.__release__()
    def ref_count(proxy):
        handle = proxy.__handle__()
        return handle.holder.ref_count(handle)

    for name in "known runtime_type wrap unwrap new release ref_count".split():
        context.__dict__[name] = locals()[name]
