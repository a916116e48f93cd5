"""
Groupings of final-state particles and the cache that interns them.

A :class:`ParticleCombination` is an ordered tuple of final-state indices,
optionally built from daughter groupings, with a back-reference to its parent.
Structurally equal groupings are interned by :class:`ParticleCombinationCache`
so that every component sees the same instance and can agree on slot indices.

The cache is an arena: every interned grouping gets an integer ``handle`` and
a key in an equivalence-keyed lookup map. Entries that are no longer needed are
reclaimed with an explicit :meth:`ParticleCombinationCache.sweep`.

>>> cache = ParticleCombinationCache()
>>> pc = cache.composite([cache.fsp(0), cache.fsp(1)])
>>> print(pc)
(01) -> (0) + (1)
>>> cache.composite([0, 1]) is pc
True

"""
import logging
import numbers

from .exceptions import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)


class ParticleCombination(object):
    """
    Node of a decay topology.

    Equality is identity: two groupings are the same only if they are the same
    interned instance. Use an :class:`Equivalence` to compare structure.
    """

    def __init__(self, indices, daughters=(), parent=None):
        self.indices = tuple(int(i) for i in indices)
        self.daughters = tuple(daughters)
        self.parent = parent
        self.handle = None
        self._keys = {}

    def is_final_state(self):
        return len(self.daughters) == 0

    @property
    def interned(self):
        return self.handle is not None

    def consistent(self):
        """Check the structure of this grouping and its daughters; errors are logged."""
        result = True
        if not self.indices:
            logger.error("%r has no indices", self)
            return False
        if len(set(self.indices)) != len(self.indices):
            logger.error("%s has repeated indices", indices_string(self))
            result = False
        if self.is_final_state():
            if len(self.indices) != 1:
                logger.error(
                    "final-state grouping %s has %d indices",
                    indices_string(self),
                    len(self.indices),
                )
                result = False
            return result
        if len(self.daughters) < 2:
            logger.error("%s has only one daughter", indices_string(self))
            result = False
        joined = tuple(i for d in self.daughters for i in d.indices)
        if joined != self.indices:
            logger.error(
                "indices of %s do not match its daughters %s",
                indices_string(self),
                [indices_string(d) for d in self.daughters],
            )
            result = False
        for d in self.daughters:
            if d.parent is not self:
                logger.error(
                    "daughter %s of %s has a different parent",
                    indices_string(d),
                    indices_string(self),
                )
                result = False
            result &= d.consistent()
        return result

    def __str__(self):
        return to_string(self)

    def __repr__(self):
        return "ParticleCombination{}".format(indices_string(self))


def indices_string(pc):
    """
    >>> indices_string(ParticleCombination((0, 2)))
    '(02)'
    """
    sep = "" if all(i < 10 for i in pc.indices) else ","
    return "(" + sep.join(str(i) for i in pc.indices) + ")"


def to_string(pc):
    if pc.is_final_state():
        return indices_string(pc)
    parts = []
    for d in pc.daughters:
        if d.is_final_state():
            parts.append(indices_string(d))
        else:
            parts.append("[" + to_string(d) + "]")
    return "{} -> {}".format(indices_string(pc), " + ".join(parts))


def origin(pc):
    """Top-most ancestor, following parent links."""
    while pc.parent is not None:
        pc = pc.parent
    return pc


def is_final_state(pc):
    return pc.is_final_state()


def disjoint(pcs):
    """True if no final-state index appears in more than one grouping."""
    seen = set()
    for pc in pcs:
        for i in pc.indices:
            if i in seen:
                return False
            seen.add(i)
    return True


def traces_to_final_state(pc, n_final_state):
    """True if the origin of ``pc`` spans all ``n_final_state`` particles."""
    return len(origin(pc).indices) == n_final_state


def prune_particle_combinations(pcs):
    """
    Keep only the groupings whose origin spans the largest number of indices.
    """
    pcs = list(pcs)
    if not pcs:
        return pcs
    n = max(len(origin(pc).indices) for pc in pcs)
    return [pc for pc in pcs if len(origin(pc).indices) == n]


def _down(pc):
    return (pc.indices, tuple(_down(d) for d in pc.daughters))


def _up(pc):
    if pc is None:
        return None
    return (pc.indices, _up(pc.parent))


def _lineage(pc):
    if pc is None:
        return None
    return (_down(pc), _lineage(pc.parent))


def _orderless_down(pc):
    return (
        tuple(sorted(pc.indices)),
        tuple(sorted(_orderless_down(d) for d in pc.daughters)),
    )


def _frame(pc):
    if pc is None:
        return None
    return (tuple(sorted(pc.indices)), _frame(pc.parent))


class Equivalence(object):
    """
    Equivalence predicate on groupings, defined by a key function.

    ``equiv(a, b)`` is true if ``equiv.key(a) == equiv.key(b)``; keys are
    hashable, so they can index lookup tables.
    """

    name = None

    def _key(self, pc):
        raise NotImplementedError

    def key(self, pc):
        if pc.interned:
            ret = pc._keys.get(self.name)
            if ret is None:
                ret = self._key(pc)
                pc._keys[self.name] = ret
            return ret
        return self._key(pc)

    def __call__(self, a, b):
        if a is b:
            return True
        if a is None or b is None:
            return False
        return self.key(a) == self.key(b)

    def __repr__(self):
        return "<equivalence {}>".format(self.name)


class EqualBySharedPointer(Equivalence):
    name = "shared_pointer"

    def key(self, pc):
        return id(pc)


class EqualByOrderedContent(Equivalence):
    name = "ordered_content"

    def _key(self, pc):
        return pc.indices


class EqualByOrderlessContent(Equivalence):
    name = "orderless_content"

    def _key(self, pc):
        return tuple(sorted(pc.indices))


class EqualDown(Equivalence):
    """Same indices in the same order, recursively through the daughters."""

    name = "down"

    def _key(self, pc):
        return _down(pc)


class EqualUp(Equivalence):
    """Same ordered indices for the grouping and every ancestor."""

    name = "up"

    def _key(self, pc):
        return _up(pc)


class EqualUpAndDown(Equivalence):
    """
    Equal down, and every ancestor equal down as well: ``(01)`` below
    ``(0123) -> (01) + (23)`` differs from ``(01)`` below
    ``(0123) -> (01) + 2 + 3``.
    """

    name = "up_and_down"

    def _key(self, pc):
        return (_down(pc), _lineage(pc.parent))


class EqualDownByOrderlessContent(Equivalence):
    name = "down_by_orderless_content"

    def _key(self, pc):
        return _orderless_down(pc)


class EqualByReferenceFrame(Equivalence):
    """Same particle content for the grouping and every ancestor, in any order."""

    name = "reference_frame"

    def _key(self, pc):
        return _frame(pc)


equal_by_shared_pointer = EqualBySharedPointer()
equal_by_ordered_content = EqualByOrderedContent()
equal_by_orderless_content = EqualByOrderlessContent()
equal_down = EqualDown()
equal_up = EqualUp()
equal_up_and_down = EqualUpAndDown()
equal_down_by_orderless_content = EqualDownByOrderlessContent()
equal_by_reference_frame = EqualByReferenceFrame()


def _check_daughters(daughters):
    if not daughters:
        raise ConfigurationError("empty daughter list")
    if len(daughters) < 2:
        raise ConfigurationError(
            "a composite grouping needs at least two daughters"
        )
    for d in daughters:
        if not d.indices:
            raise ConfigurationError("daughter {!r} has no indices".format(d))
    if not disjoint(daughters):
        raise ConfigurationError(
            "daughters {} share final-state indices".format(
                [indices_string(d) for d in daughters]
            )
        )


def _check_structure(pc):
    if not pc.daughters:
        if len(pc.indices) != 1:
            raise ConfigurationError(
                "final-state grouping needs exactly one index: {!r}".format(pc)
            )
        return
    _check_daughters(pc.daughters)
    if tuple(i for d in pc.daughters for i in d.indices) != pc.indices:
        raise ConfigurationError(
            "indices of {!r} do not match its daughters".format(pc)
        )
    for d in pc.daughters:
        if d.parent is not pc:
            raise ConfigurationError(
                "daughter {!r} is not attached to {!r}".format(d, pc)
            )
        _check_structure(d)


def _copy_tree(pc, parent):
    ret = ParticleCombination(pc.indices, (), parent)
    ret.daughters = tuple(_copy_tree(d, ret) for d in pc.daughters)
    return ret


class ParticleCombinationCache(object):
    """
    Arena of interned groupings.

    Groupings are interned under ``equal_up_and_down``: the same daughters in
    the same order below the same chain of ancestors. The same two-particle
    subsystem therefore exists once as a free grouping and once per parent it
    appears under.
    """

    equiv = equal_up_and_down

    def __init__(self):
        self._arena = []
        self._lookup = {}

    def __len__(self):
        return len(self._lookup)

    def __iter__(self):
        for pc in self._arena:
            if pc is not None:
                yield pc

    def __contains__(self, pc):
        return (
            isinstance(pc, ParticleCombination)
            and pc.handle is not None
            and pc.handle < len(self._arena)
            and self._arena[pc.handle] is pc
        )

    def get(self, handle):
        """Grouping stored under ``handle``."""
        if 0 <= handle < len(self._arena) and self._arena[handle] is not None:
            return self._arena[handle]
        raise NotFoundError("no grouping with handle {}".format(handle))

    def _build(self, value):
        """Detached (not interned) tree described by ``value``."""
        if isinstance(value, ParticleCombination):
            if value not in self:
                _check_structure(value)
            return value
        if isinstance(value, numbers.Integral):
            if value < 0:
                raise ConfigurationError(
                    "negative final-state index {}".format(value)
                )
            return ParticleCombination((value,))
        value = list(value)
        if not value:
            raise ConfigurationError("empty daughter list")
        if len(value) == 1 and isinstance(value[0], numbers.Integral):
            return ParticleCombination((value[0],))
        daughters = [self._build(i) for i in value]
        _check_daughters(daughters)
        ret = ParticleCombination(tuple(i for d in daughters for i in d.indices))
        ret.daughters = tuple(_copy_tree(d, ret) for d in daughters)
        return ret

    def find(self, value):
        """
        Interned grouping equivalent to ``value``, or ``None``. Never inserts.

        ``value`` may be a grouping, a final-state index, or a list of either.
        """
        pc = self._build(value)
        if pc in self:
            return pc
        handle = self._lookup.get(self.equiv.key(pc))
        if handle is None:
            return None
        return self._arena[handle]

    def intern(self, value):
        """Interned grouping equivalent to ``value``, inserting it if missing."""
        pc = self._build(value)
        if pc in self:
            return pc
        handle = self._lookup.get(self.equiv.key(pc))
        if handle is not None:
            return self._arena[handle]
        if pc.parent is not None and pc.parent not in self:
            raise ConfigurationError(
                "parent of {!r} is not interned".format(pc)
            )
        self._insert_tree(pc)
        return pc

    __getitem__ = intern

    def _insert_tree(self, pc):
        pc.handle = len(self._arena)
        self._arena.append(pc)
        self._lookup[self.equiv.key(pc)] = pc.handle
        for d in pc.daughters:
            self._insert_tree(d)

    def fsp(self, index):
        """Final-state grouping of particle ``index``."""
        return self.intern(int(index))

    def composite(self, daughters):
        """
        Composite grouping of ``daughters``.

        The daughters are interned as free groupings first, then copied below
        the new parent so that each copy carries the right lineage.
        """
        daughters = list(daughters)
        _check_daughters([self._build(d) for d in daughters])
        free = []
        for d in daughters:
            d = self._build(d)
            if d.parent is not None:
                d = _copy_tree(d, None)
            free.append(self.intern(d))
        ret = ParticleCombination(tuple(i for d in free for i in d.indices))
        ret.daughters = tuple(_copy_tree(d, ret) for d in free)
        return self.intern(ret)

    def sweep(self, roots):
        """
        Remove every entry that is not reachable from ``roots`` through
        daughter and parent links. Returns the number of removed entries.
        """
        keep = set()
        stack = [pc for pc in roots if pc in self]
        while stack:
            pc = stack.pop()
            if pc.handle in keep:
                continue
            keep.add(pc.handle)
            if pc.parent is not None:
                stack.append(pc.parent)
            stack.extend(pc.daughters)
        removed = 0
        for handle, pc in enumerate(self._arena):
            if pc is None or handle in keep:
                continue
            key = self.equiv.key(pc)
            if self._lookup.get(key) == handle:
                del self._lookup[key]
            self._arena[handle] = None
            pc.handle = None
            pc._keys = {}
            removed += 1
        logger.debug("swept %d groupings, %d remain", removed, len(self))
        return removed

    def consistent(self):
        result = True
        for pc in self:
            if self._lookup.get(self.equiv.key(pc)) != pc.handle:
                logger.error("lookup entry of %r is stale", pc)
                result = False
            if pc.parent is not None and pc.parent not in self:
                logger.error("parent of %r is not in the cache", pc)
                result = False
            result &= pc.consistent()
        return result

    def __str__(self):
        return "\n".join(
            "{}: {}".format(pc.handle, to_string(pc)) for pc in self
        )


GroupingCache = ParticleCombinationCache
