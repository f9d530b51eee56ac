import numpy as np

from time import process_time

from ..tools.inputparser import readItem

SECPERYEAR = 365.25 * 24 * 3600.0


class StreamNet(object):
    """
    This class encapsulates the hydraulic information required by the erosion engine on a given mesh:

    - the upstream to downstream ordering of the active nodes,
    - the drainage area and water discharge obtained from a uniform runoff,
    - the bankfull channel geometry and the hydraulic geometry of the flow,
    - the optional inlet node with its sediment supply.

    Channel geometry follows the downstream hydraulic geometry power laws

    .. math::

        W = k_w Q^{\\omega_w}, \\quad D = k_d Q^{\\omega_d}, \\quad n = k_n Q^{\\omega_n}

    with discharge expressed in m3/s. The hydraulic geometry is obtained from the bankfull values using the at-a-station exponents and the ratio between the actual and the bankfull runoff.

    :arg mesh: `UnstMesh` object
    :arg input: parsed YAML mapping (section `hydraulics`)
    :arg verbose: output flag
    """

    def __init__(self, mesh, input=None, verbose=False):

        if mesh is None:
            raise ValueError("StreamNet requires a valid mesh.")
        if input is None:
            input = {}

        self.mesh = mesh
        self.verbose = verbose

        self.rain = readItem(input, "hydraulics", "rain", 1.0)
        self.infilt = readItem(input, "hydraulics", "infilt", 0.0)
        self.bankRunoff = readItem(
            input, "hydraulics", "bankrunoff", self.rain - self.infilt
        )
        self.geometry = readItem(input, "hydraulics", "geometry", True)

        self.kwds = readItem(input, "hydraulics", "kwds", 1.0)
        self.ewds = readItem(input, "hydraulics", "ewds", 0.5)
        self.kdds = readItem(input, "hydraulics", "kdds", 1.0)
        self.edds = readItem(input, "hydraulics", "edds", 0.0)
        self.knds = readItem(input, "hydraulics", "knds", 0.03)
        self.ends = readItem(input, "hydraulics", "ends", 0.0)
        self.ewstn = readItem(input, "hydraulics", "ewstn", 0.0)
        self.edstn = readItem(input, "hydraulics", "edstn", 0.0)
        self.enstn = readItem(input, "hydraulics", "enstn", 0.0)

        self.inlet = readItem(input, "hydraulics", "inlet", None)
        if self.inlet is not None:
            self.inlet = int(self.inlet)
            if self.inlet < 0 or self.inlet >= mesh.npoints:
                raise ValueError("Inlet node {} is not a mesh node.".format(self.inlet))
        self.inletArea = readItem(input, "hydraulics", "inletarea", 0.0)
        inSed = readItem(input, "hydraulics", "insedload", 0.0)
        inSed = np.array(inSed, dtype=np.float64, ndmin=1)
        if len(inSed) == 1 and mesh.numg > 1:
            # A total load is split following the bedrock grading
            inSed = inSed[0] * mesh.brgrade
        if len(inSed) != mesh.numg:
            raise ValueError("Inlet sediment load needs one value per grain size.")
        self.inSedLoadm = inSed

        return

    def getRainRate(self):
        return self.rain

    def getInfilt(self):
        return self.infilt

    def getInletNode(self):
        return self.inlet

    def getInSedLoad(self):
        """
        Total sediment load supplied at the inlet (m3/yr).
        """

        return float(self.inSedLoadm.sum())

    def getInSedLoadm(self):
        """
        Sediment load supplied at the inlet for each grain size (m3/yr).
        """

        return self.inSedLoadm.copy()

    def sortNodesByNetOrder(self):
        """
        Orders the active nodes from upstream to downstream.

        The ordering is a topological sort of the receiver graph: a node is only listed once all its active donors have been listed. A cycle in the flow network makes this impossible and raises an error.

        :return: order of the active nodes
        """

        t0 = process_time()
        mesh = self.mesh
        active = np.where(mesh.boundary == 0)[0]
        isActive = mesh.boundary == 0
        rcv = mesh.rcv

        if np.any(rcv[active] < 0):
            raise ValueError(
                "Active nodes {} have no downstream neighbour.".format(
                    active[rcv[active] < 0]
                )
            )

        # Number of active donors of each node
        donors = active[isActive[rcv[active]]]
        ndonors = np.bincount(rcv[donors], minlength=mesh.npoints)

        stack = [k for k in active if ndonors[k] == 0]
        order = []
        while stack:
            nid = stack.pop()
            order.append(nid)
            r = rcv[nid]
            if isActive[r]:
                ndonors[r] -= 1
                if ndonors[r] == 0:
                    stack.append(r)

        if len(order) != len(active):
            raise ValueError(
                "Flow network contains a cycle: {} active nodes could not be ordered.".format(
                    len(active) - len(order)
                )
            )

        mesh.setOrder(order)

        if self.verbose:
            print(
                "Sort nodes by network order (%0.02f seconds)" % (process_time() - t0),
                flush=True,
            )

        return mesh.order

    def flowAccumulation(self):
        """
        Computes drainage area and water discharge (m3/yr) from a uniform runoff rate.

        Nodes need to be ordered from upstream to downstream.
        """

        mesh = self.mesh
        mesh.drainArea = mesh.vArea.copy()
        if self.inlet is not None:
            mesh.drainArea[self.inlet] += self.inletArea

        for nid in mesh.order:
            r = mesh.rcv[nid]
            if r >= 0:
                mesh.drainArea[r] += mesh.drainArea[nid]

        runoff = max(0.0, self.rain - self.infilt)
        mesh.discharge = runoff * mesh.drainArea

        return

    def findChanGeom(self):
        """
        Computes bankfull channel width, depth and roughness from discharge.
        """

        if not self.geometry:
            return

        mesh = self.mesh
        qsec = mesh.discharge / SECPERYEAR
        mesh.chanWidth = self.kwds * np.power(qsec, self.ewds)
        mesh.chanDepth = self.kdds * np.power(qsec, self.edds)
        mesh.chanRough = self.knds * np.power(qsec, self.ends)

        return

    def findHydrGeom(self):
        """
        Computes the hydraulic geometry of the flow from the bankfull geometry using at-a-station exponents.
        """

        mesh = self.mesh
        if not self.geometry:
            mesh.hydrWidth = mesh.chanWidth.copy()
            mesh.hydrDepth = mesh.chanDepth.copy()
            mesh.hydrRough = mesh.chanRough.copy()
            return

        runoff = max(0.0, self.rain - self.infilt)
        if self.bankRunoff > 0.0:
            ratio = runoff / self.bankRunoff
        else:
            ratio = 1.0

        mesh.hydrWidth = mesh.chanWidth * ratio ** self.ewstn
        mesh.hydrDepth = mesh.chanDepth * ratio ** self.edstn
        mesh.hydrRough = mesh.chanRough * ratio ** self.enstn

        return
