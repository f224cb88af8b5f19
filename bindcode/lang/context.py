from bindcode import utils

CONVERSION_ERRORS = ("nomatch", "raise")

class Bindcode:
    def __init__(self, *, conversion_errors="nomatch", log_file=None):
        """
            ASSEMBLY:
            every part attaches its operations to the context
            later parts use and wrap the earlier ones, so the order matters

            exceptions are needed by everything
            shared holders record their blocks in the registry
            holders check strategies against the graph and wrap register_inheritance
            objects need holders and the registry to wrap values
            typing resolves through the graph and objects' runtime types
            the binder drives typing and objects

            CONFIG:
            conversion_errors - what a declared conversion that raises does to binding
                "nomatch" - the candidate doesn't match, the next one is tried
                "raise" - ConversionError, binding stops
            log_file - where context.logging() writes, stderr if None
        """
        if conversion_errors not in CONVERSION_ERRORS:
            raise ValueError("conversion_errors must be one of {}, got {!r}".format(", ".join(CONVERSION_ERRORS), conversion_errors))
        self.config = utils.Object(
            conversion_errors=conversion_errors,
            log_file=log_file,
        )

        from bindcode.context.exceptions import add_exceptions
        add_exceptions(self)
        from bindcode.context.graph import add_graph
        add_graph(self)
        from bindcode.context.registry import add_registry
        add_registry(self)
        from bindcode.context.holders import add_holders
        add_holders(self)
        from bindcode.context.objects import add_objects
        add_objects(self)
        from bindcode.context.typing import add_typing
        add_typing(self)
        from bindcode.context.binder import add_binder
        add_binder(self)
        from bindcode.context.logging import add_logging
        add_logging(self)

    def close(self):
        """
            releases every proxy the host still holds
        """
        self.registry.clear()
    def __enter__(self):
        return self
    def __exit__(self, exc_type, exc, tb):
        self.close()
