import inspect
import math
import textwrap
import threading
from bindcode.utils.code import format_exception_only
from bindcode import Bindcode, Counted, SharedFromThis, Func, Overloads

def func_gen(f):
    def wrap(*args, **kwargs):
        def wrapped():
            return f(*args, **kwargs)
        return wrapped
    return wrap

def name_tests(*args, **kwargs):
    frame, filename, lineno, function, code_context, index = inspect.stack(0)[1]
    module = frame.f_globals
    for i, test in enumerate(args):
        module["test_{}".format(str(i + 1))] = test
    for kw, test in kwargs.items():
        module["test_{}".format(kw)] = test

class Log:
    def __init__(self):
        self.destroyed = []
        self.lock = threading.Lock()
    def destroy(self, obj):
        with self.lock:
            self.destroyed.append(obj)
    def count(self, obj):
        return sum(1 for item in self.destroyed if item is obj)
log = Log()

class Object(Counted):
    def __init__(self):
        super().__init__()
    def to_string(self):
        return "Object"
    def destroy(self):
        log.destroy(self)
class MyObject1(Object):
    def __init__(self, value):
        super().__init__()
        self.value = value
    def to_string(self):
        return "MyObject1[{}]".format(self.value)

class MyObject2:
    def __init__(self, value):
        self.value = value
    def to_string(self):
        return "MyObject2[{}]".format(self.value)
    def __float__(self):
        return math.sqrt(self.value)
    def destroy(self):
        log.destroy(self)

class MyObject3(SharedFromThis):
    def __init__(self, value):
        self.value = value
    def to_string(self):
        return "MyObject3[{}]".format(self.value)
    def destroy(self):
        log.destroy(self)

class A:
    def __float__(self):
        return 42.0
class B(A):
    pass
class C(B):
    def __float__(self):
        return 3.141592
    def __str__(self):
        return "Pi"

class Plain:
    "registered as unmanaged"
    def destroy(self):
        log.destroy(self)

def make_context(**config):
    context = Bindcode(**config)
    context.register_holder(Object, "intrusive")
    context.register_inheritance(MyObject1, Object)
    context.register_conversion(int, MyObject1)

    context.register_holder(MyObject2, "shared")
    context.register_holder(MyObject3, "shared")
    context.register_conversion(MyObject2, float)
    context.register_conversion(MyObject3, MyObject2, lambda obj: MyObject2(4 * obj.value))

    context.register_inheritance(B, A)
    context.register_inheritance(C, B)
    context.register_conversion(A, float)
    context.register_conversion(C, float)
    context.register_conversion(C, str)

    context.register_holder(Plain, "unmanaged")
    return context

def to_string(obj):
    return obj.to_string()
def identity(value):
    return value

def print_object():
    return Overloads("print_object", Func(to_string, [Object], name="print_object"))
def print_double():
    return Overloads("print_double", Func(identity, [float], name="print_double"))
def print_string():
    return Overloads("print_string", Func(identity, [str], name="print_string"))

@func_gen
def binds(make_args, candidates, result, kinds=None):
    context = make_context()
    args = make_args(context)
    bound = context.bind(candidates(), args)
    if kinds is not None:
        got = [conversion.kind for conversion in bound.conversions]
        assert got == kinds, "Expected {}, got {}".format(kinds, got)
    value = bound()
    assert value == result, "Expected {}, got {}".format(repr(result), repr(value))
@func_gen
def fails(make_args, candidates, error=None):
    context = make_context()
    args = make_args(context)
    try:
        context.bind_call(candidates(), args)
    except Exception as exc:
        if not error:
            return
        if type(exc).__name__ == error:
            return
        msg = format_exception_only(exc).rstrip()
        if error in msg:
            return
        raise Exception("Expected a call with {} to raise\n{}\ngot\n{}".format(repr(args), textwrap.indent(error, " " * 4), textwrap.indent(msg, " " * 4)))
    raise Exception("Expected a call with {} to raise{}".format(repr(args), "\n{}".format(textwrap.indent(error, " " * 4)) if error else " an exception"))

def run_threads(target, count=8):
    threads = [threading.Thread(target=target) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
