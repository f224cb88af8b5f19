from ._box import *
