import numpy as np

from time import process_time

from ..sed.stratplex import buildColumn


class UnstMesh(object):
    """
    This class stores the unstructured (TIN) mesh used by the erosion engine as a node arena: every node attribute is held in a numpy array indexed by the node ID.

    .. note::

        The mesh geometry is not computed here. It requires the definition of several precomputed variables such as:

            - the Voronoi area of each node,
            - the receiver (single downstream neighbour) of each node and the length of the flow edge,
            - the undirected mesh edges with their lengths and the lengths of the Voronoi faces they cross.

    Receivers are stored as indices (`-1` when a node has no downstream neighbour). Boundary flags are `0` for interior nodes, `1` for closed boundaries and `2` for open outlets. Interior nodes are the active ones, their processing order is kept in `activeIDs`.

    Undirected edges are expanded into directed edges stored as consecutive complementary pairs: edge `2k` goes from `a` to `b` and edge `2k+1` from `b` to `a`.

    Changes in elevation driven by erosion or deposition always go through the node stratigraphic column (`eroDep` and `eroDepTotal`), the elevation being updated by the thickness actually eroded or deposited.

    :arg elev: node elevations
    :arg vArea: Voronoi area of each node
    :arg rcv: receiver index of each node (`-1` for none)
    :arg flowLen: length of the edge linking each node to its receiver
    :arg boundary: boundary flag of each node
    :arg edges: undirected edges (M, 2)
    :arg edgeLen: length of each undirected edge
    :arg vEdgeLen: length of the Voronoi face associated with each undirected edge
    :arg coords: optional node coordinates
    :arg numg: number of grain sizes
    :arg maxregdep: maximum regolith (active layer) thickness
    :arg regdep: initial regolith thickness
    :arg erody: bedrock erodibility
    :arg erodySed: sediment erodibility (defaults to `erody`)
    :arg brgrade: grain size fractions of the bedrock
    :arg tauc: per node critical shear stress (None to use each law default)
    :arg refiner: callable `refiner(mesh, nid, time)` inserting nodes around a node
    :arg verbose: output flag
    """

    def __init__(
        self,
        elev,
        vArea,
        rcv,
        flowLen,
        boundary=None,
        edges=None,
        edgeLen=None,
        vEdgeLen=None,
        coords=None,
        numg=1,
        maxregdep=1.0,
        regdep=0.0,
        erody=1.0e-4,
        erodySed=None,
        brgrade=None,
        tauc=None,
        refiner=None,
        verbose=False,
    ):

        t0 = process_time()
        self.verbose = verbose
        self.elev = np.array(elev, dtype=np.float64)
        self.npoints = len(self.elev)
        self.vArea = np.array(vArea, dtype=np.float64)
        self.rcv = np.array(rcv, dtype=np.int64)
        self.flowLen = np.array(flowLen, dtype=np.float64)
        if boundary is None:
            self.boundary = np.zeros(self.npoints, dtype=np.int32)
            self.boundary[self.rcv < 0] = 2
        else:
            self.boundary = np.array(boundary, dtype=np.int32)
        if coords is not None:
            coords = np.array(coords, dtype=np.float64)
        self.coords = coords

        for name in ["vArea", "rcv", "flowLen", "boundary"]:
            if len(getattr(self, name)) != self.npoints:
                raise ValueError(
                    "Mesh attribute {} does not match the number of nodes.".format(name)
                )

        self._buildEdges(edges, edgeLen, vEdgeLen)

        self.numg = int(numg)
        self.maxregdep = maxregdep
        if erodySed is None:
            erodySed = erody
        if brgrade is None:
            brgrade = np.full(self.numg, 1.0 / self.numg)
        self.brgrade = np.asarray(brgrade, dtype=np.float64)
        if tauc is not None:
            tauc = np.array(tauc, dtype=np.float64)
        self.tauc = tauc

        self._initNodeFields()
        self.layers = [
            buildColumn(self.numg, maxregdep, regdep, erody, erodySed, self.brgrade)
            for k in range(self.npoints)
        ]

        self.refiner = refiner
        self.refineRequests = []
        self.meshVersion = 0
        self.setOrder(np.where(self.boundary == 0)[0])

        if self.verbose:
            print(
                "Define mesh arena with {} nodes (%0.02f seconds)".format(self.npoints)
                % (process_time() - t0),
                flush=True,
            )

        return

    @classmethod
    def fromFile(cls, npzfile, **kwargs):
        """
        Builds the mesh from a compressed numpy file.

        The file needs to contain the arrays `elev`, `area`, `rcv` and `flowlen` and optionally `boundary`, `edges`, `edgelen`, `vedgelen`, `coords` and `tauc`.

        :arg npzfile: numpy compressed file name

        :return: UnstMesh
        """

        fileData = np.load(npzfile)
        keys = fileData.files

        def optional(key):
            if key in keys:
                return fileData[key]
            return None

        mesh = cls(
            fileData["elev"],
            fileData["area"],
            fileData["rcv"],
            fileData["flowlen"],
            boundary=optional("boundary"),
            edges=optional("edges"),
            edgeLen=optional("edgelen"),
            vEdgeLen=optional("vedgelen"),
            coords=optional("coords"),
            tauc=optional("tauc"),
            **kwargs
        )
        del fileData

        return mesh

    def _buildEdges(self, edges, edgeLen, vEdgeLen):
        """
        Expands undirected edges into consecutive complementary directed pairs.
        """

        if edges is None:
            self.edgeOrig = np.zeros(0, dtype=np.int64)
            self.edgeDest = np.zeros(0, dtype=np.int64)
            self.edgeLen = np.zeros(0, dtype=np.float64)
            self.vEdgeLen = np.zeros(0, dtype=np.float64)
            return

        edges = np.asarray(edges, dtype=np.int64).reshape(-1, 2)
        nedges = len(edges)
        if edgeLen is None:
            if self.coords is None:
                raise ValueError("Edge lengths or node coordinates are required.")
            edgeLen = np.linalg.norm(
                self.coords[edges[:, 0]] - self.coords[edges[:, 1]], axis=1
            )
        if vEdgeLen is None:
            raise ValueError("Voronoi face lengths are required with mesh edges.")

        self.edgeOrig = np.empty(2 * nedges, dtype=np.int64)
        self.edgeDest = np.empty(2 * nedges, dtype=np.int64)
        self.edgeOrig[0::2] = edges[:, 0]
        self.edgeOrig[1::2] = edges[:, 1]
        self.edgeDest[0::2] = edges[:, 1]
        self.edgeDest[1::2] = edges[:, 0]
        self.edgeLen = np.repeat(np.asarray(edgeLen, dtype=np.float64), 2)
        self.vEdgeLen = np.repeat(np.asarray(vEdgeLen, dtype=np.float64), 2)

        return

    def _initNodeFields(self):
        """
        Hydraulic attributes, flux accumulators and rates stored on each node.
        """

        n = self.npoints
        self.drainArea = np.zeros(n, dtype=np.float64)
        self.discharge = np.zeros(n, dtype=np.float64)
        self.chanWidth = np.ones(n, dtype=np.float64)
        self.chanDepth = np.ones(n, dtype=np.float64)
        self.chanRough = np.full(n, 0.03, dtype=np.float64)
        self.hydrWidth = np.ones(n, dtype=np.float64)
        self.hydrDepth = np.ones(n, dtype=np.float64)
        self.hydrRough = np.full(n, 0.03, dtype=np.float64)
        self.flood = np.zeros(n, dtype=bool)
        self.tau = np.zeros(n, dtype=np.float64)
        self.drdt = np.zeros(n, dtype=np.float64)
        self.dzdt = np.zeros(n, dtype=np.float64)
        self.drdtM = np.zeros((n, self.numg), dtype=np.float64)
        self.Qs = np.zeros(n, dtype=np.float64)
        self.Qsin = np.zeros(n, dtype=np.float64)
        self.QsM = np.zeros((n, self.numg), dtype=np.float64)
        self.QsinM = np.zeros((n, self.numg), dtype=np.float64)

        return

    @property
    def activeIDs(self):
        return self.order

    def setOrder(self, order):
        """
        Sets the processing order of the active nodes.
        """

        self.order = np.asarray(order, dtype=np.int64)

        return

    def getSlope(self, nid):
        """
        Slope between a node and its receiver computed from the current elevations.

        A negative value means the flow network is no longer consistent with the topography.
        """

        rcv = self.rcv[nid]
        if rcv < 0 or self.flowLen[nid] <= 0.0:
            return 0.0

        return (self.elev[nid] - self.elev[rcv]) / self.flowLen[nid]

    def getLayerDepth(self, nid, lyr):
        return self.layers[nid].getLayerDepth(lyr)

    def getLayerDgrade(self, nid, lyr, g):
        return self.layers[nid].getLayerDgrade(lyr, g)

    def getLayerErody(self, nid, lyr):
        return self.layers[nid].getLayerErody(lyr)

    def getLayerSed(self, nid, lyr):
        return self.layers[nid].getLayerSed(lyr)

    def getLayerFractions(self, nid, lyr):
        return self.layers[nid].getLayerFractions(lyr)

    def getNumLayer(self, nid):
        return self.layers[nid].getNumLayer()

    def onBedrock(self, nid):
        return self.layers[nid].onBedrock()

    def alluvThickness(self, nid):
        return self.layers[nid].alluvThickness()

    def eroDep(self, nid, lyr, dz, time):
        """
        Erodes or deposits a thickness of each grain size at a given layer of a node column and updates the node elevation accordingly.

        :arg nid: node index
        :arg lyr: layer index
        :arg dz: thickness change of each grain size (negative for erosion)
        :arg time: current time

        :return: ret thickness change actually applied for each grain size
        """

        ret = self.layers[nid].erodep(lyr, dz, time)
        self.elev[nid] += ret.sum()

        return ret

    def eroDepTotal(self, nid, dz, time=0.0):
        """
        Erodes or deposits a total thickness from the top of a node column and updates the node elevation accordingly.
        """

        ret = self.layers[nid].erodepTotal(dz, time)
        self.elev[nid] += ret.sum()

        return ret

    def meanElevation(self):
        """
        Area-weighted mean elevation of the active nodes.
        """

        ids = self.activeIDs
        area = self.vArea[ids].sum()
        if area <= 0.0:
            raise ValueError("Active nodes have a null total Voronoi area.")

        return (self.elev[ids] * self.vArea[ids]).sum() / area

    def addNodesAround(self, nid, time):
        """
        Requests the insertion of new nodes around a given node.

        The request is recorded and forwarded to the refiner callable when one is defined. The mesh version is incremented so that cached geometric quantities get recomputed.

        :arg nid: node index
        :arg time: current time
        """

        self.refineRequests.append((int(nid), time))
        if self.refiner is not None:
            self.refiner(self, nid, time)
        self.meshVersion += 1

        return
