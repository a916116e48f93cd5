"""
Traversal of the closed set of model node kinds.

:func:`children` is a :func:`functools.singledispatch` function with one
implementation per node kind; an unknown kind raises :class:`TypeError`, so a
new kind cannot be silently skipped. The collectors below walk a node and
everything below it::

    >>> fa = FreeAmplitude(1.0, [object()], name="a", parent="D")
    >>> free_amplitudes([DecayTree(fa)]) == [fa]
    True

"""
import functools

from .amp.core import AmplitudeComponent
from .decay_tree import DecayTree, FreeAmplitude, ModelComponent
from .parameter import Parameter


@functools.singledispatch
def children(node):
    raise TypeError("unknown node kind {}".format(type(node).__name__))


@children.register(list)
@children.register(tuple)
def _(node):
    return list(node)


@children.register(ModelComponent)
def _(node):
    return [node.admixture] + list(node.decay_trees)


@children.register(DecayTree)
def _(node):
    ret = [node.free_amplitude] + list(node.amplitude_components)
    return ret + [node.daughter_decay_trees[i] for i in sorted(node.daughter_decay_trees)]


@children.register(AmplitudeComponent)
def _(node):
    return list(node.parameters)


@children.register(Parameter)
def _(node):
    return []


def walk(node):
    """``node`` and every node below it, depth first."""
    yield node
    for i in children(node):
        yield from walk(i)


def _unique(nodes):
    ret = []
    seen = set()
    for i in nodes:
        if id(i) not in seen:
            seen.add(id(i))
            ret.append(i)
    return ret


def _collect(node, kind):
    return _unique(i for i in walk(node) if isinstance(i, kind))


def free_amplitudes(node):
    return _collect(node, FreeAmplitude)


def decay_trees(node):
    return _collect(node, DecayTree)


def amplitude_components(node):
    return _collect(node, AmplitudeComponent)


def parameters(node):
    """Free amplitudes, admixtures and amplitude-component parameters."""
    return _collect(node, Parameter)


def filter_free_amplitudes(node, *predicates):
    """Free amplitudes below ``node`` satisfying every predicate."""
    return [fa for fa in free_amplitudes(node) if all(f(fa) for f in predicates)]


def by_parent(name):
    return lambda fa: fa.parent == name


def by_spin_projection(m):
    return lambda fa: fa.spin_projection == m


def is_fixed(parameter):
    return parameter.fixed


def is_free(parameter):
    return not parameter.fixed
