from .context import Bindcode
