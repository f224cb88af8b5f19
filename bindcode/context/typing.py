from bindcode.context.exceptions import ConversionError
from bindcode.utils.code import inline_exc, InlineException
from bindcode import utils

class Dynamic:
    "parameter type that takes any value as it is"

class Conversion:
    """
        how one value binds to one required type

        edge is None for identity
        apply does the conversion, at most once per bound argument
    """
    def __init__(self, value, type, edge=None):
        self.value = value
        self.type = type
        self.edge = edge
    @property
    def kind(self):
        return self.edge.kind if self.edge else "identity"
    @property
    def cost(self):
        return self.edge.priority if self.edge else 0
    def apply(self, unwrap):
        value = unwrap(self.value)
        if self.edge is None or self.edge.kind == "upcast":
            return value
        return self.edge.convert(value)
    def __repr__(self):
        return "<{} conversion to {} ({})>".format(self.kind, utils.qualname(self.type), self.cost)

def add_typing(context):
    context.Dynamic = Dynamic

    def extends(cls, base):
        return cls is base or context.graph.find(cls, base, "upcast") is not None
    def resolve(value, type):
        """
            the conversion binding value to type, or None

            exact runtime type first, then the type's own edges in order,
            upcasts before declared conversions
            a single edge is followed, never a chain
        """
        if type is Dynamic:
            return Conversion(value, type)
        source = context.runtime_type(value)
        if source is type:
            return Conversion(value, type)
        for edge in context.graph.outgoing(source):
            if edge.target is type:
                return Conversion(value, type, edge)
        return None
    @inline_exc(ConversionError)
    def convert(value, type):
        """
            returns the converted native value
        """
        conversion = resolve(value, type)
        if conversion is None:
            raise InlineException("can't convert {} to {}".format(utils.qualname(context.runtime_type(value)), utils.qualname(type)))
        try:
            return conversion.apply(context.unwrap)
        except Exception as exc:
            raise InlineException("converting {} to {} failed: {}".format(utils.qualname(context.runtime_type(value)), utils.qualname(type), exc)) from exc

    for name in "extends resolve convert".split():
        context.__dict__[name] = locals()[name]
