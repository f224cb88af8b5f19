import functools
import inspect

class InlineException(Exception): pass
def inline_exc(exc_type):
    """
        internal helpers raise InlineException
        the boundary turns it into exc_type unless the caller asks for it inline

        inline callers are the ones that want to try something and move on,
        e.g. the binder trying a candidate
    """
    def wrap(f):
        @functools.wraps(f)
        def wrapped(*args, inline_exc=False, **kwargs):
            if not inline_exc:
                try:
                    return f(*args, **kwargs)
                except InlineException as exc:
                    raise exc_type(*exc.args).with_traceback(exc.__traceback__) from None
                # REASON:
                # - with_traceback makes it point to the source instead of here
                # - from None hides the reraise
            else:
                return f(*args, **kwargs)
        return wrapped
    return wrap

def format_exception_only(exc):
    """
        error message without the traceback
        works exactly like traceback.format_exception(type(exc), exc, None)
    """
    exc_type = type(exc)

    stype = exc_type.__qualname__
    smod = exc_type.__module__
    if smod not in ("__main__", "builtins"):
        stype = smod + '.' + stype
    try:
        _str = str(exc)
    except Exception:
        _str = "<unprintable {} object>".format(exc_type.__name__)

    if _str == "None" or not _str:
        line = "{}\n".format(stype)
    else:
        line = "{}: {}\n".format(stype, _str)
    return line

def map_args(map):
    def wrap(f):
        sign = inspect.signature(f)
        sign = list(sign.parameters.values())
        indices = []
        keywords = set()
        for pos, param in enumerate(sign):
            if param.name in map:
                if param.kind == inspect.Parameter.POSITIONAL_OR_KEYWORD:
                    indices.append((param.name, pos))
                    keywords.add(param.name)
                if param.kind == inspect.Parameter.KEYWORD_ONLY:
                    keywords.add(param.name)
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            args = list(args)
            for name, pos in indices:
                if len(args) > pos:
                    args[pos] = map[name](args[pos])
            for name in keywords:
                if name in kwargs:
                    kwargs[name] = map[name](kwargs[name])
            return f(*args, **kwargs)
        return wrapped
    return wrap

def type_check(obj, type):
    if not isinstance(obj, type):
        raise TypeError("{} is not {}".format(repr(obj), type.__name__))
    return obj
def type_check_decor(*, result=None, **types):
    def gen_map(type):
        def check(obj):
            type_check(obj, type)
            return obj
        return check
    map = {name: gen_map(type) for name, type in types.items()}
    check_args = map_args(map)
    def wrap(f):
        f = check_args(f)
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            return_value = f(*args, **kwargs)
            if result:
                type_check(return_value, result)
            return return_value
        return wrapped
    return wrap
