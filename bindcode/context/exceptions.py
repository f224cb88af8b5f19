from bindcode import utils

class BindcodeError(Exception):
    pass

class RegistrationError(BindcodeError):
    "a type, holder or conversion registered in a way that contradicts earlier registrations"

class ConversionError(BindcodeError, TypeError):
    pass

class BindError(BindcodeError, TypeError):
    """
        no candidate accepts the arguments

        attempts is a list of (signature, reason) in declaration order
    """
    def __init__(self, name, arg_types, attempts):
        super().__init__(name, arg_types, attempts)
        self.name = name
        self.arg_types = arg_types
        self.attempts = attempts
    def __str__(self):
        lines = ["no overload of {} accepts ({})".format(self.name, ", ".join(utils.qualname(type) for type in self.arg_types))]
        if not self.attempts:
            lines.append("    no candidates")
        for signature, reason in self.attempts:
            lines.append("    {}: {}".format(signature, reason))
        return "\n".join(lines)
AmbiguousOrNoConversion = BindError

class DoubleOwnershipViolation(BindcodeError):
    """
        two independent control blocks for one address

        not recoverable, one of the blocks would free the object under the other
    """
    def __init__(self, address, known, given):
        super().__init__(address, known, given)
        self.address = address
        self.known = known
        self.given = given
    def __str__(self):
        return "object @ {:#x} is already owned by {!r}, got {!r}".format(self.address, self.known, self.given)

class UseAfterRelease(BindcodeError, ValueError):
    "invalid handle, its share was released or the object was destroyed"

def add_exceptions(context):
    context.exc = utils.Object()
    for name, exception in utils.redict(globals(), add="""
        BindcodeError RegistrationError ConversionError BindError AmbiguousOrNoConversion
        DoubleOwnershipViolation UseAfterRelease
    """.split()).items():
        context.exc[name] = exception
