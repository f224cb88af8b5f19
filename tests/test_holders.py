import threading
import pytest
from bindcode import Bindcode, Holder, ControlBlock, UseAfterRelease, DoubleOwnershipViolation, RegistrationError
from .testdefs import *

def test_intrusive_counts_in_object():
    holder = Holder("intrusive")
    obj = MyObject1(1)
    first = holder.acquire(obj)
    second = holder.acquire(obj)
    assert obj.ref_count() == 2
    assert holder.ref_count(first) == 2
    assert holder.raw_pointer(second) == id(obj)
    assert not holder.release(first)
    assert log.count(obj) == 0
    assert holder.release(second)
    assert log.count(obj) == 1

def test_intrusive_dead_object():
    holder = Holder("intrusive")
    obj = MyObject1(2)
    holder.release(holder.acquire(obj))
    with pytest.raises(UseAfterRelease):
        holder.acquire(obj)
    assert log.count(obj) == 1

def test_intrusive_rejects_block():
    holder = Holder("intrusive")
    obj = MyObject1(3)
    with pytest.raises(ValueError):
        holder.acquire(obj, ControlBlock(obj, holder.deleter))

def test_release_twice():
    holder = Holder("intrusive")
    obj = MyObject1(4)
    keep = holder.acquire(obj)
    handle = holder.share(keep)
    holder.release(handle)
    with pytest.raises(UseAfterRelease):
        holder.release(handle)
    with pytest.raises(UseAfterRelease):
        holder.ref_count(handle)
    with pytest.raises(UseAfterRelease):
        holder.raw_pointer(handle)
    with pytest.raises(UseAfterRelease):
        holder.share(handle)
    assert holder.ref_count(keep) == 1
    holder.release(keep)
    assert log.count(obj) == 1

def test_foreign_handle():
    first, second = Holder("intrusive"), Holder("intrusive")
    handle = first.acquire(MyObject1(5))
    with pytest.raises(ValueError):
        second.release(handle)
    first.release(handle)

def test_shared_block():
    holder = Holder("shared")
    obj = MyObject2(1)
    first = holder.acquire(obj)
    second = holder.share(first)
    assert first.block is second.block
    assert holder.ref_count(second) == 2
    holder.release(second)
    assert first.block.count == 1
    assert holder.release(first)
    assert first.block.destroyed
    assert log.count(obj) == 1

def test_shared_join_block():
    holder = Holder("shared")
    obj = MyObject2(2)
    first = holder.acquire(obj)
    second = holder.acquire(obj, first.block)
    assert second.block is first.block
    holder.release(first)
    holder.release(second)
    assert log.count(obj) == 1
    with pytest.raises(UseAfterRelease):
        holder.acquire(obj, first.block)

def test_shared_block_of_other_object():
    holder = Holder("shared")
    handle = holder.acquire(MyObject2(3))
    with pytest.raises(ValueError):
        holder.acquire(MyObject2(4), handle.block)
    holder.release(handle)

def test_shared_from_this():
    holder = Holder("shared")
    obj = MyObject3(1)
    first = holder.acquire(obj)
    second = holder.acquire(obj)
    assert obj.__control_block__ is first.block
    assert second.block is first.block
    assert holder.ref_count(first) == 2
    holder.release(first)
    holder.release(second)
    assert log.count(obj) == 1

def test_shared_from_this_second_block():
    holder = Holder("shared")
    obj = MyObject3(2)
    handle = holder.acquire(obj)
    with pytest.raises(DoubleOwnershipViolation):
        holder.acquire(obj, ControlBlock(obj, holder.deleter))
    holder.release(handle)

def test_unmanaged():
    holder = Holder("unmanaged")
    obj = Plain()
    handle = holder.acquire(obj)
    other = holder.share(handle)
    assert holder.ref_count(handle) == 0
    assert holder.raw_pointer(other) == id(obj)
    assert not holder.release(handle)
    assert not holder.release(other)
    assert log.count(obj) == 0

def test_deleter():
    deleted = []
    holder = Holder("shared", deleted.append)
    obj = MyObject2(5)
    holder.release(holder.acquire(obj))
    assert deleted == [obj]
    assert log.count(obj) == 0

def test_unknown_strategy():
    with pytest.raises(ValueError):
        Holder("borrowed")

@pytest.mark.parametrize("strategy, make", [
    ("intrusive", lambda: MyObject1(10)),
    ("shared", lambda: MyObject2(10)),
])
def test_threads_destroy_once(strategy, make):
    holder = Holder(strategy)
    obj = make()
    handles = []
    lock = threading.Lock()
    first = holder.acquire(obj)
    def acquire():
        for i in range(200):
            handle = holder.share(first)
            with lock:
                handles.append(handle)
    run_threads(acquire)
    assert holder.ref_count(first) == 1 + 8 * 200
    def release():
        while True:
            with lock:
                if not handles:
                    return
                handle = handles.pop()
            holder.release(handle)
    run_threads(release)
    assert log.count(obj) == 0
    holder.release(first)
    assert log.count(obj) == 1

@pytest.mark.parametrize("strategy, make", [
    ("intrusive", lambda: MyObject1(11)),
    ("shared", lambda: MyObject2(11)),
])
def test_threads_last_release_races(strategy, make):
    holder = Holder(strategy)
    for i in range(50):
        obj = make()
        first = holder.acquire(obj)
        handles = [holder.share(first) for i in range(7)] + [first]
        barrier = threading.Barrier(len(handles))
        results = []
        def release(handle):
            barrier.wait()
            results.append(holder.release(handle))
        threads = [threading.Thread(target=release, args=(handle,)) for handle in handles]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert results.count(True) == 1
        assert log.count(obj) == 1

def test_register_holder():
    context = make_context()
    holder = context.holders[Object]
    assert context.register_holder(Object, "intrusive") is holder
    with pytest.raises(RegistrationError):
        context.register_holder(Object, "shared")
    assert context.holder_of(MyObject1) is holder
    assert context.holder_of(A) is None

def test_register_holder_relative():
    context = make_context()
    with pytest.raises(RegistrationError):
        context.register_holder(MyObject1, "shared")
    with pytest.raises(TypeError):
        context.register_holder("Object", "intrusive")

def test_register_intrusive_uncounted():
    context = Bindcode()
    with pytest.raises(RegistrationError):
        context.register_holder(A, "intrusive")
    assert A not in context.holders

def test_register_holder_subclass():
    class Sub(MyObject2):
        pass
    context = make_context()
    with pytest.raises(RegistrationError):
        context.register_holder(Sub, "unmanaged")
    context = Bindcode()
    context.register_holder(Sub, "unmanaged")
    with pytest.raises(RegistrationError):
        context.register_holder(MyObject2, "shared")
