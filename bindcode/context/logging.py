from bindcode import utils
import sys
import re

delim = ".\t".replace("\t", " " * (4 - 1))

def add_logging(context):
    log_default = object.__getattribute__

    class logging(utils.Context):
        """
            traces the context's operations while active

            every call made through the context is printed, nested calls indented
            with context.logging(): context.bind_call(f, [obj])
            tracers of several contexts nest, each traces only its own context
        """
        def __init__(self, file=None):
            if file is None: file = context.config.log_file
            self.file = file
            self.stack_size = 0
            self.paused = 0
        def print(self, msg):
            file = self.file if self.file is not None else sys.stderr
            print(delim * self.stack_size + msg, file=file)
        SUPPRESS = "exc config graph registry holders logging".split()
        def getattribute(self, obj, name):
            attr = log_default(obj, name)
            if self.paused or obj is not context or name.startswith("__") or name in logging.SUPPRESS or isinstance(attr, type):
                return attr
            if callable(attr):
                return lambda *args, **kwargs: self.func(name, attr, *args, **kwargs)
            self.print(name)
            return attr
        def func(self, name, attr, *args, **kwargs):
            args_str = []
            for arg in args:
                args_str.append(self.obj_str(arg))
            for key, arg in kwargs.items():
                args_str.append("{}={}".format(key, self.obj_str(arg)))
            msg = "{}({})".format(name, ", ".join(args_str))
            self.print(msg)
            try:
                self.stack_size += 1
                return attr(*args, **kwargs)
            finally:
                self.stack_size -= 1
        MAX_OBJ_LEN = 60
        def obj_str(self, obj):
            self.paused += 1
            try:
                s = repr(obj)
            finally:
                self.paused -= 1
            s = s.strip()
            s = re.sub(r'(\r\n|\r|\n)+', "\\n", s)
            s = re.sub(r"\s+", " ", s)
            if len(s) > logging.MAX_OBJ_LEN:
                qualname = type(obj).__name__
                wrap = "{}<{{}}..>".format(qualname)
                s = wrap.format(s[:logging.MAX_OBJ_LEN - len(wrap) + len("{}")])
            return s
        def __enter__(self):
            tracer = self
            cls = type(context)
            previous = vars(cls).get("__getattribute__")
            def getattribute(obj, name):
                if obj is not context and previous is not None:
                    return previous(obj, name)
                return tracer.getattribute(obj, name)
            self.previous, self.installed = previous, getattribute
            setattr(cls, "__getattribute__", getattribute)
            return self
        def __exit__(self, exc_type, exc_value, traceback):
            cls = type(context)
            if vars(cls).get("__getattribute__") is not self.installed:
                raise RuntimeError("tracers have to exit in the reverse order they were entered")
            if self.previous is not None:
                setattr(cls, "__getattribute__", self.previous)
            else:
                delattr(cls, "__getattribute__")
    context.logging = logging
