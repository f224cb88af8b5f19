from bindcode.context.exceptions import DoubleOwnershipViolation
import threading

class IdentityRegistry:
    """
        native address -> the live proxy that represents it to the host

        ONE OWNER PER ADDRESS:
        the same object can come back from any number of native calls
        the first crossing constructs the proxy, every later one reuses it and adds a share
        an object never gets a second, independent count

        shared objects also keep their control block here for as long as the block lives,
        a raw pointer crossing again after its proxy died joins the old block
        the context's shared holders record their blocks here too,
        so a native acquire and a host crossing of one object end up on the same block

        everything happens under one lock, held for the whole lookup-or-insert
    """
    def __init__(self):
        self.proxies = {}
        self.blocks = {}
        self.lock = threading.RLock()
    def lookup_or_insert(self, address, construct_proxy, block=None):
        """
            construct_proxy(block) builds a proxy owning one share
            it gets the block the object is already owned by, or None
        """
        with self.lock:
            known = self.block_of(address)
            if block is not None and known is not None and block is not known:
                raise DoubleOwnershipViolation(address, known, block)
            proxy = self.proxies.get(address)
            if proxy is not None:
                proxy.__retain__()
                return proxy
            proxy = construct_proxy(block if block is not None else known)
            if proxy.__holder__.strategy == "unmanaged":
                return proxy
            self.proxies[address] = proxy
            if proxy.__block__ is not None:
                self.record_block(address, proxy.__block__)
            return proxy
    def block_of(self, address):
        "the live control block owning the address, or None"
        with self.lock:
            known = self.blocks.get(address)
            if known is not None and known.destroyed:
                del self.blocks[address]
                known = None
            return known
    def record_block(self, address, block):
        with self.lock:
            if self.blocks.get(address) is block:
                return
            self.blocks[address] = block
            block.on_destroy.append(lambda block: self.forget_block(address, block))
    def lookup(self, address):
        with self.lock:
            return self.proxies.get(address)
    def discard(self, address, proxy):
        with self.lock:
            if self.proxies.get(address) is proxy:
                del self.proxies[address]
    def forget_block(self, address, block):
        with self.lock:
            if self.blocks.get(address) is block:
                del self.blocks[address]
    def clear(self):
        """
            releases every live proxy
        """
        with self.lock:
            proxies = list(self.proxies.values())
        for proxy in proxies:
            while proxy.__alive__:
                proxy.__release__()
    def __len__(self):
        return len(self.proxies)
    def __contains__(self, address):
        return address in self.proxies

def add_registry(context):
    context.registry = IdentityRegistry()
