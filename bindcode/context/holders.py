from bindcode.context.exceptions import UseAfterRelease, DoubleOwnershipViolation, RegistrationError
from bindcode.utils.code import type_check_decor
import threading

INTRUSIVE = "intrusive"
SHARED = "shared"
UNMANAGED = "unmanaged"
STRATEGIES = (INTRUSIVE, SHARED, UNMANAGED)
COUNTED_OPS = ("inc_ref", "dec_ref", "ref_count")

class Counted:
    """
        base of objects that carry their own reference count

        a fresh object has count 0 and nobody owning it
        the release that brings the count back to 0 is the one that destroys,
        after that the object can't be acquired again

        subclasses must call Counted.__init__
    """
    def __init__(self):
        self._refs = 0
        self._refs_dead = False
        self._refs_lock = threading.Lock()
    def inc_ref(self):
        with self._refs_lock:
            if self._refs_dead:
                raise UseAfterRelease("{} @ {:#x} was already destroyed".format(type(self).__qualname__, id(self)))
            self._refs += 1
            return self._refs
    def dec_ref(self):
        with self._refs_lock:
            if self._refs <= 0:
                raise UseAfterRelease("{} @ {:#x} has no references to release".format(type(self).__qualname__, id(self)))
            self._refs -= 1
            if not self._refs:
                self._refs_dead = True
            return self._refs
    def ref_count(self):
        return self._refs

class SharedFromThis:
    """
        a shared object that remembers its control block

        a raw pointer to it can be owned again without creating a second block
    """
    __control_block__ = None

class ControlBlock:
    """
        the count of a shared object, kept outside of it

        every handle of the object references the same block
    """
    def __init__(self, obj, deleter):
        self.obj = obj
        self.deleter = deleter
        self.count = 0
        self.destroyed = False
        self.on_destroy = []
        self.lock = threading.Lock()
    def inc_ref(self):
        with self.lock:
            if self.destroyed:
                raise UseAfterRelease("{!r} was already destroyed".format(self))
            self.count += 1
            return self.count
    def dec_ref(self):
        with self.lock:
            if self.count <= 0:
                raise UseAfterRelease("{!r} has no references to release".format(self))
            self.count -= 1
            if not self.count:
                self.destroyed = True
            return self.count
    def __repr__(self):
        return "<control block {} @ {:#x}>".format(type(self.obj).__qualname__, id(self.obj))

class SharedPtr:
    "a native value that is already owned by a control block"
    def __init__(self, obj, block):
        self.obj = obj
        self.block = block
    def __repr__(self):
        return "SharedPtr({!r}, {!r})".format(self.obj, self.block)

class Handle:
    "one share of ownership, the token returned by Holder.acquire"
    def __init__(self, holder, obj, block=None):
        self.holder = holder
        self.obj = obj
        self.block = block
        self.released = False
    def __repr__(self):
        return "<{} handle{} {} @ {:#x}>".format(
            self.holder.strategy,
            " (released)" if self.released else "",
            type(self.obj).__qualname__,
            id(self.obj),
        )

def destroy(obj):
    "default deleter, runs the object's destroy() if it has one"
    f = getattr(obj, "destroy", None)
    if callable(f):
        f()

def intrusive_acquire(holder, obj, block):
    if block is not None:
        raise ValueError("intrusive objects carry their own count, got {!r}".format(block))
    obj.inc_ref()
    return Handle(holder, obj)
def intrusive_release(holder, handle):
    return handle.obj.dec_ref() == 0
def intrusive_count(holder, handle):
    return handle.obj.ref_count()

def adopt_block(holder, obj, block, known):
    for other in (known, getattr(obj, "__control_block__", None)):
        if other is None or other.destroyed:
            continue
        if block is None:
            block = other
        elif other is not block:
            raise DoubleOwnershipViolation(id(obj), other, block)
    if block is None:
        block = ControlBlock(obj, holder.deleter)
        if isinstance(obj, SharedFromThis):
            obj.__control_block__ = block
    if block.obj is not obj:
        raise ValueError("{!r} does not own {} @ {:#x}".format(block, type(obj).__qualname__, id(obj)))
    block.inc_ref()
    return Handle(holder, obj, block)
def shared_acquire(holder, obj, block):
    registry = holder.registry
    if registry is None:
        return adopt_block(holder, obj, block, None)
    with registry.lock:
        handle = adopt_block(holder, obj, block, registry.block_of(id(obj)))
        registry.record_block(id(obj), handle.block)
        return handle
def shared_release(holder, handle):
    return handle.block.dec_ref() == 0
def shared_count(holder, handle):
    return handle.block.count

def unmanaged_acquire(holder, obj, block):
    return Handle(holder, obj)
def unmanaged_release(holder, handle):
    return False
def unmanaged_count(holder, handle):
    return 0

OPS = {
    INTRUSIVE: (intrusive_acquire, intrusive_release, intrusive_count),
    SHARED: (shared_acquire, shared_release, shared_count),
    UNMANAGED: (unmanaged_acquire, unmanaged_release, unmanaged_count),
}

class Holder:
    """
        ownership of native objects of one registered type

        the strategy is a tag, the operations dispatch on it through OPS
        acquire gives out a Handle per share, release takes it back exactly once

        DESTRUCTION:
        the deleter runs once, on the release that drops the count to 0
        the counters decide that under their own lock, so two threads
        releasing the last two shares can't both destroy
        unmanaged objects are never destroyed, their lifetime is the caller's problem

        ONE BLOCK PER OBJECT:
        a shared holder given a registry looks the object up there before making a block
        and records the blocks it makes, a standalone holder only knows SharedFromThis
    """
    def __init__(self, strategy, deleter=None, registry=None):
        if strategy not in STRATEGIES:
            raise ValueError("unknown holder strategy {!r}, expected one of {}".format(strategy, ", ".join(STRATEGIES)))
        if deleter is None: deleter = destroy
        self.strategy = strategy
        self.deleter = deleter
        self.registry = registry
        self.lock = threading.Lock()
        self.acquire_op, self.release_op, self.count_op = OPS[strategy]
    def acquire(self, obj, block=None):
        return self.acquire_op(self, obj, block)
    def share(self, handle):
        self.check(handle)
        if handle.block is not None:
            return self.acquire(handle.obj, handle.block)
        return self.acquire(handle.obj)
    def release(self, handle):
        """
            returns True if this release destroyed the object
        """
        with self.lock:
            self.check(handle)
            handle.released = True
        if not self.release_op(self, handle):
            return False
        if handle.block is not None:
            handle.block.deleter(handle.obj)
            callbacks, handle.block.on_destroy = handle.block.on_destroy, []
            for callback in callbacks:
                callback(handle.block)
        else:
            self.deleter(handle.obj)
        return True
    def raw_pointer(self, handle):
        self.check(handle)
        return id(handle.obj)
    def ref_count(self, handle):
        self.check(handle)
        return self.count_op(self, handle)
    def check(self, handle):
        if handle.holder is not self:
            raise ValueError("{!r} belongs to a different holder".format(handle))
        if handle.released:
            raise UseAfterRelease("{!r} was already released".format(handle))
    def __repr__(self):
        return "Holder({!r})".format(self.strategy)

def add_holders(context):
    context.holders = {}
    context.Counted = Counted
    context.SharedFromThis = SharedFromThis
    context.SharedPtr = SharedPtr

    @type_check_decor(cls=type)
    def register_holder(cls, strategy, deleter=None):
        """
            fixes the ownership strategy of a type

            a type's strategy never changes once registered
            intrusive types must count themselves, shared ones get blocks through the registry
        """
        holder = context.holders.get(cls)
        if holder is not None:
            if holder.strategy != strategy:
                raise RegistrationError("{} is already held as {}, can't hold it as {}".format(cls.__qualname__, holder.strategy, strategy))
            return holder
        if strategy == INTRUSIVE and not all(callable(getattr(cls, name, None)) for name in COUNTED_OPS):
            raise RegistrationError("{} is held as intrusive but doesn't count itself, derive it from Counted".format(cls.__qualname__))
        relatives = context.graph.related(cls) + list(cls.__mro__[1:]) + [other for other in context.holders if issubclass(other, cls)]
        for other in relatives:
            other_holder = context.holders.get(other)
            if other_holder is not None and other_holder.strategy != strategy:
                raise RegistrationError("{} is held as {}, its relative {} as {}".format(cls.__qualname__, strategy, other.__qualname__, other_holder.strategy))
        holder = Holder(strategy, deleter, context.registry if strategy == SHARED else None)
        context.holders[cls] = holder
        return holder
    def holder_of(cls):
        for type in getattr(cls, "__mro__", (cls,)):
            if type in context.holders:
                return context.holders[type]
        for base in context.graph.ancestors(cls):
            if base in context.holders:
                return context.holders[base]
        return None

    old_register_inheritance = context.register_inheritance
    def register_inheritance(derived, base):
        derived_holder = context.holders.get(derived)
        base_holder = holder_of(base)
        if derived_holder and base_holder and derived_holder.strategy != base_holder.strategy:
            raise RegistrationError("{} is held as {} but its base {} as {}".format(
                derived.__qualname__, derived_holder.strategy, base.__qualname__, base_holder.strategy))
        return old_register_inheritance(derived, base)

    for name in "register_holder holder_of register_inheritance".split():
        context.__dict__[name] = locals()[name]
