import pytest
import warnings
import numpy as np

warnings.filterwarnings("ignore", category=RuntimeWarning)


def buildChain(elev, area=100.0, spacing=10.0, **kwargs):
    """
    Builds a single channel mesh: node k drains to node k+1 and the last node is an open outlet.
    """

    from tinero.mesher import UnstMesh

    n = len(elev)
    rcv = np.arange(1, n + 1)
    rcv[-1] = -1
    boundary = np.zeros(n, dtype=np.int32)
    boundary[-1] = 2
    edges = np.column_stack((np.arange(n - 1), np.arange(1, n)))

    return UnstMesh(
        elev,
        np.full(n, area),
        rcv,
        np.full(n, spacing),
        boundary=boundary,
        edges=edges,
        edgeLen=np.full(n - 1, spacing),
        vEdgeLen=np.full(n - 1, spacing),
        **kwargs
    )


@pytest.fixture
def chain():
    return buildChain
