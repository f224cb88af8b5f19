from bindcode.context.exceptions import BindError, ConversionError
from bindcode.context.holders import Handle
from bindcode import utils

class Func:
    """
        one native overload

        args are the parameter types, in order
        holder_args are positions that take a Handle instead of the object,
        the handle is a share held for the duration of the call
    """
    def __init__(self, native, args=(), name=None, return_type=None, holder_args=()):
        if name is None: name = getattr(native, "__name__", "func")
        self.native = native
        self.args = list(args)
        self.name = name
        self.return_type = return_type
        self.holder_args = set(holder_args)
    def signature(self):
        args = []
        for pos, type in enumerate(self.args):
            arg = utils.qualname(type)
            if pos in self.holder_args:
                arg = "holder<{}>".format(arg)
            args.append(arg)
        sign = "{}({})".format(self.name, ", ".join(args))
        if self.return_type is not None:
            sign += "->{}".format(utils.qualname(self.return_type))
        return sign
    def __repr__(self):
        return "<func {}>".format(self.signature())

class Overloads(list):
    """
        candidates in declaration order

        the first one that accepts the arguments is called,
        a later candidate is never preferred for converting more cheaply
    """
    def __init__(self, name, *funcs):
        super().__init__(funcs)
        self.name = name
    def overload(self, *args, return_type=None, holder_args=()):
        def wrap(f):
            self.append(Func(f, args, name=self.name, return_type=return_type, holder_args=holder_args))
            return f
        return wrap
    def __repr__(self):
        return "<overloads {} [{}]>".format(self.name, ", ".join(func.signature() for func in self))

class BoundCall:
    """
        a candidate with its arguments converted

        temporaries are host references taken for the call,
        values made by declared conversions and shares passed to holder parameters
        calling releases them once the native function has returned
        a bound call dropped without calling it gives them back like cancel
    """
    def __init__(self, context, func, args, conversions, temporaries):
        self.context = context
        self.func = func
        self.args = args
        self.conversions = conversions
        self.temporaries = temporaries
        self.done = False
    @property
    def cost(self):
        return sum(conversion.cost for conversion in self.conversions)
    def __call__(self):
        return self.context.invoke(self)
    def cancel(self):
        "gives the temporaries back without calling"
        if self.done:
            return
        self.done = True
        with utils.contexts(*self.temporaries):
            pass
    def __enter__(self):
        return self
    def __exit__(self, exc_type, exc, tb):
        self.cancel()
    def __del__(self):
        self.cancel()
    def __repr__(self):
        return "<bound {} ({})>".format(self.func.signature(), ", ".join(conversion.kind for conversion in self.conversions))

class Temporary(utils.Context):
    "a holder share given to a holder parameter"
    def __init__(self, handle):
        self.handle = handle
    def __exit__(self, exc_type, exc, tb):
        self.handle.holder.release(self.handle)

def add_binder(context):
    context.Func = Func
    context.Overloads = Overloads

    def candidate_list(candidates):
        if isinstance(candidates, Func):
            return candidates.name, [candidates]
        name = getattr(candidates, "name", None)
        candidates = list(candidates)
        if name is None:
            name = candidates[0].name if candidates else "func"
        return name, candidates
    def match(func, args):
        """
            returns (conversions, None) or (None, reason)
        """
        if len(args) != len(func.args):
            return None, "takes {} argument{}, got {}".format(len(func.args), "" if len(func.args) == 1 else "s", len(args))
        conversions = []
        for pos, (arg, type) in enumerate(zip(args, func.args)):
            conversion = context.resolve(arg, type)
            if conversion is None:
                return None, "argument {}: no conversion from {} to {}".format(pos + 1, utils.qualname(context.runtime_type(arg)), utils.qualname(type))
            if pos in func.holder_args and context.holder_of(type) is None:
                return None, "argument {}: {} has no holder".format(pos + 1, utils.qualname(type))
            conversions.append(conversion)
        return conversions, None
    def apply(func, conversions):
        """
            converts every argument once, in order
            on failure the temporaries taken so far are given back
        """
        args, temporaries = [], []
        try:
            for pos, conversion in enumerate(conversions):
                try:
                    value = conversion.apply(context.unwrap)
                except Exception as exc:
                    if context.config.conversion_errors == "raise":
                        raise ConversionError("argument {} of {}: {}".format(pos + 1, func.signature(), exc)) from exc
                    return None, "argument {}: {} conversion to {} failed: {}".format(
                        pos + 1, conversion.kind, utils.qualname(conversion.type), exc), temporaries
                if conversion.kind == "declared":
                    value = context.wrap(value)
                    if isinstance(value, context.Proxy):
                        temporaries.append(value)
                if pos in func.holder_args:
                    value = holder_arg(value, conversion, temporaries)
                else:
                    value = context.unwrap(value)
                args.append(value)
        except BaseException:
            release_all(temporaries)
            raise
        return args, None, temporaries
    def holder_arg(value, conversion, temporaries):
        proxy = value if isinstance(value, context.Proxy) else None
        if proxy is None and isinstance(conversion.value, context.Proxy) and conversion.kind != "declared":
            proxy = conversion.value
        if proxy is None:
            proxy = context.wrap(value)
            temporaries.append(proxy)
        handle = proxy.__handle__()
        share = handle.holder.share(handle)
        temporaries.append(Temporary(share))
        return share
    def release_all(temporaries):
        with utils.contexts(*temporaries):
            pass

    def bind(candidates, args):
        """
            the first candidate, in declaration order, whose every parameter resolves

            BindError lists what was tried and why it failed
        """
        name, candidates = candidate_list(candidates)
        args = list(args)
        attempts = []
        for func in candidates:
            conversions, reason = match(func, args)
            if conversions is None:
                attempts.append((func.signature(), reason))
                continue
            values, reason, temporaries = apply(func, conversions)
            if values is None:
                release_all(temporaries)
                attempts.append((func.signature(), reason))
                continue
            return BoundCall(context, func, values, conversions, temporaries)
        raise BindError(name, [context.runtime_type(arg) for arg in args], attempts)
    def invoke(bound):
        """
            calls the native function and wraps what it returns
            the call's temporaries live exactly until then
        """
        if bound.done:
            raise RuntimeError("{!r} was already called".format(bound))
        bound.done = True
        with utils.contexts(*bound.temporaries):
            result = bound.func.native(*bound.args)
            return wrap_result(bound.func, result)
    def wrap_result(func, result):
        if result is None:
            return None
        if isinstance(result, Handle):
            # a holder returned by value, its share moves to the host
            handle = result
            result = context.SharedPtr(handle.obj, handle.block) if handle.block is not None else handle.obj
            try:
                return wrap_result(func, result)
            finally:
                handle.holder.release(handle)
        if func.return_type is not None and func.return_type is not context.Dynamic:
            conversion = context.resolve(result, func.return_type)
            if conversion is None:
                raise ConversionError("{} returned {}, expected {}".format(
                    func.signature(), utils.qualname(context.runtime_type(result)), utils.qualname(func.return_type)))
            if conversion.kind == "declared":
                result = conversion.apply(context.unwrap)
        return context.wrap(result)
    def bind_call(candidates, args):
        return invoke(bind(candidates, args))

    for name in "bind invoke bind_call".split():
        context.__dict__[name] = locals()[name]
