class Object(dict):
    def __init__(self, **kwargs):
        dict.__init__(self, kwargs)
        self.__dict__ = self
    def __hash__(self):
        return id(self)
    def __getstate__(self):
        return self
    def __setstate__(self, state):
        self.update(state)
        self.__dict__ = self

class Context:
    def __init__(self):
        pass
    def __enter__(self):
        return self
    def __exit__(self, exc_type, exc, tb):
        pass
    def __call__(self):
        self.__enter__()
class contexts(Context):
    def __init__(self, *contexts):
        self.contexts = list(contexts)
    def __enter__(self):
        for context in self.contexts:
            context.__enter__()
        return self
    def __exit__(self, exc_type, exc, tb):
        for context in reversed(self.contexts):
            context.__exit__(exc_type, exc, tb)

def redict(d, remove=None, add=None):
    if remove is None: remove = []
    if add is None: add = []
    d = dict(d)
    for var in remove:
        if var in d:
            del d[var]
    if add:
        d = {key: d[key] for key in add if key in d}
    return d

def qualname(type):
    if type is None:
        return "()"
    return getattr(type, "__qualname__", repr(type))
