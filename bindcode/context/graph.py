from bindcode.context.exceptions import RegistrationError
from bindcode.utils.code import type_check_decor
from bindcode import utils

UPCAST = 0
DECLARED = 1

class Edge:
    """
        a one-hop conversion from source to target

        upcasts reinterpret the same object as its base
        declared conversions produce a new value with convert
    """
    def __init__(self, source, target, kind, priority, convert=None):
        self.source = source
        self.target = target
        self.kind = kind
        self.priority = priority
        self.convert = convert
    def __repr__(self):
        return "<{} {}->{} ({})>".format(self.kind, utils.qualname(self.source), utils.qualname(self.target), self.priority)

class ConversionGraph:
    """
        source type -> outgoing edges, by priority, then by registration order

        INHERITANCE:
        a derived type gets a direct upcast edge to every ancestor
        so resolution never has to walk more than one edge
        the closure is computed here, once, when the relation is registered
    """
    def __init__(self):
        self.edges = {}
    def outgoing(self, source):
        return list(self.edges.get(source, ()))
    def find(self, source, target, kind=None):
        for edge in self.edges.get(source, ()):
            if edge.target is target and (kind is None or edge.kind == kind):
                return edge
        return None
    def insert(self, edge):
        edges = self.edges.setdefault(edge.source, [])
        pos = len(edges)
        for i, other in enumerate(edges):
            if other.priority > edge.priority:
                pos = i
                break
        edges.insert(pos, edge)
        self.edges.setdefault(edge.target, [])
        return edge
    def ancestors(self, cls):
        return [edge.target for edge in self.edges.get(cls, ()) if edge.kind == "upcast"]
    def descendants(self, cls):
        return [source for source, edges in self.edges.items() if any(edge.kind == "upcast" and edge.target is cls for edge in edges)]
    def related(self, cls):
        return self.ancestors(cls) + self.descendants(cls)
    def known(self, cls):
        return cls in self.edges

    def register_inheritance(self, derived, base):
        if derived is base or derived in self.ancestors(base):
            raise RegistrationError("{} can't derive from {}, it would be its own base".format(derived.__qualname__, base.__qualname__))
        targets = [base] + self.ancestors(base)
        for source in [derived] + self.descendants(derived):
            for target in targets:
                if not self.find(source, target, "upcast"):
                    self.insert(Edge(source, target, "upcast", UPCAST))
        return self.find(derived, base, "upcast")
    def register_conversion(self, source, target, convert=None, priority=DECLARED):
        if priority < DECLARED:
            raise RegistrationError("declared conversions rank below upcasts, priority must be at least {}, got {}".format(DECLARED, priority))
        if self.find(source, target, "declared"):
            raise RegistrationError("conversion {}->{} is already registered".format(utils.qualname(source), utils.qualname(target)))
        if convert is None: convert = target
        return self.insert(Edge(source, target, "declared", priority, convert))

def add_graph(context):
    context.graph = ConversionGraph()

    @type_check_decor(derived=type, base=type)
    def register_inheritance(derived, base):
        """
            derived can be passed wherever base is required
        """
        return context.graph.register_inheritance(derived, base)
    @type_check_decor(source=type, target=type)
    def register_conversion(source, target, convert=None, priority=DECLARED):
        """
            source values convert to target with convert(value)
            convert defaults to the target's constructor
        """
        return context.graph.register_conversion(source, target, convert, priority)

    for name in "register_inheritance register_conversion".split():
        context.__dict__[name] = locals()[name]
