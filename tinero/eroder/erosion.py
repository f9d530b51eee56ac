import numpy as np

from time import process_time

from ..sed.hillslope import hillSLP
from ..tools.inputparser import readItem
from .lawfactory import buildBedErode
from .lawfactory import buildSedTrans

# Integrators relying on a transport capacity law
transportMethods = ["stream", "streammulti", "detacherode"]


class Erosion(hillSLP):
    """
    Erosion and sediment transport engine.

    The engine holds one bedrock detachment law and one sediment transport law and provides several explicit integrators advancing the landscape over a global time increment. Each integrator subdivides the increment into stable sub-steps limited by the time needed for a node and its receiver to reach the same elevation. The sum of the sub-steps of a call always equals the requested increment, the list of sub-steps of the latest call being stored in `subSteps`.

    The integrators are:

    - `erodeDetachLim`: detachment-limited erosion,
    - `erodeDetachLimUplift`: detachment-limited erosion accounting for uplift in the time step,
    - `streamErode`: detachment or transport-limited erosion for a single grain size,
    - `streamErodeMulti`: transport-limited erosion for multiple grain sizes,
    - `detachErode`: combined detachment and transport algorithm integrated over the channel depth.

    The class also performs hillslope diffusion (inherited from `hillSLP`), exposure time bookkeeping and mesh densification requests.

    :arg mesh: `UnstMesh` object
    :arg input: parsed YAML mapping
    :arg verbose: output flag
    :arg bedErode: detachment law (built from the input file when not provided)
    :arg sedTrans: transport law (built from the input file when not provided)
    """

    def __init__(self, mesh, input=None, verbose=False, bedErode=None, sedTrans=None):

        if mesh is None:
            raise ValueError("Erosion requires a valid mesh.")
        if input is None:
            input = {}

        self.mesh = mesh
        self.verbose = verbose

        # Laws are built when selected in the erosion section, required by the
        # integrator or parameterised in their own section
        method = readItem(input, "erosion", "method", None)
        if bedErode is None and (
            method is not None
            or readItem(input, "erosion", "detachment", None) is not None
            or "detachment" in input
        ):
            bedErode = buildBedErode(input)
        if sedTrans is None and (
            method in transportMethods
            or readItem(input, "erosion", "transport", None) is not None
            or "transport" in input
        ):
            sedTrans = buildSedTrans(input)
        self.bedErode = bedErode
        self.sedTrans = sedTrans

        hillSLP.__init__(self, input)

        self.maxflux = readItem(input, "adapt", "maxflux", None)
        self.minDt = readItem(input, "erosion", "mindt", None)

        self.subSteps = []
        self.sedOut = 0.0

        return

    def _checkLaws(self, strmNet, transport=True):

        if strmNet is None:
            raise ValueError("Erosion integrators require a valid stream network.")
        if self.bedErode is None:
            raise ValueError("A detachment law needs to be defined.")
        if transport and self.sedTrans is None:
            raise ValueError("A transport law needs to be defined.")

        return

    def _prepare(self, strmNet):
        """
        Updates the channel and hydraulic geometries used by the capacity laws.
        """

        strmNet.findChanGeom()
        strmNet.findHydrGeom()
        self.mesh.dzdt.fill(0.0)
        self.subSteps = []
        self.sedOut = 0.0

        return

    def _floorStep(self, dtmax, floor):
        if self.minDt is not None:
            floor = max(floor, self.minDt)

        return max(dtmax, floor)

    @staticmethod
    def _clampStep(dtmax, dtg, tol):
        """
        Limits a sub-step to the remaining time, the last sub-step absorbing any remainder smaller than the tolerance.
        """

        if dtmax >= dtg or dtg - dtmax < tol:
            return dtg

        return dtmax

    def _report(self, name, t0):

        if self.verbose:
            print(
                "Compute {} over {} sub-steps (%0.02f seconds)".format(
                    name, len(self.subSteps)
                )
                % (process_time() - t0),
                flush=True,
            )

        return

    def erodeDetachLim(self, dtg, strmNet, time=0.0):
        """
        Detachment-limited erosion: all detached material is assumed to be carried away.

        The sub-step is a fraction (0.9) of the smallest time needed by a node to reach the elevation of its receiver. Time to flattening smaller than 5e-6 are ignored.

        :arg dtg: global time increment
        :arg strmNet: `StreamNet` object
        :arg time: current time used to date the stratigraphic layers
        """

        self._checkLaws(strmNet, transport=False)
        t0 = process_time()
        frac = 0.9
        mesh = self.mesh
        self._prepare(strmNet)
        ids = mesh.activeIDs

        while dtg > 0.0:
            for nid in ids:
                mesh.dzdt[nid] = -self.bedErode.detachCapacity(mesh, nid)

            dtmax = dtg
            for nid in ids:
                dn = mesh.rcv[nid]
                ratediff = mesh.dzdt[dn] - mesh.dzdt[nid]
                if ratediff > 0.0:
                    dt = (mesh.elev[nid] - mesh.elev[dn]) / ratediff * frac
                    if dt > 5.0e-6 and dt < dtmax:
                        dtmax = dt
            dtmax = self._clampStep(dtmax, dtg, 1.0e-7)

            for nid in ids:
                ret = mesh.eroDepTotal(nid, mesh.dzdt[nid] * dtmax, time)
                self.sedOut -= ret.sum() * mesh.vArea[nid]

            self.subSteps.append(dtmax)
            dtg -= dtmax
            time += dtmax

        self._report("detachment-limited erosion", t0)

        return

    def erodeDetachLimUplift(self, dtg, strmNet, uplift, time=0.0):
        """
        Detachment-limited erosion with the uplift rate accounted for in the time step.

        Nodes draining to a boundary node (which is not uplifted) see their slope increase by the uplift rate. The sub-step is 0.1 of the time to flattening and is never smaller than `dtg` x 1e-4.

        :arg dtg: global time increment
        :arg strmNet: `StreamNet` object
        :arg uplift: uplift provider (`Uplift` object)
        :arg time: current time used to date the stratigraphic layers
        """

        self._checkLaws(strmNet, transport=False)
        if uplift is None:
            raise ValueError("An uplift provider is required.")

        t0 = process_time()
        frac = 0.1
        dtmin = dtg * 1.0e-4
        mesh = self.mesh
        self._prepare(strmNet)
        ids = mesh.activeIDs

        while dtg > 0.0:
            for nid in ids:
                mesh.dzdt[nid] = -self.bedErode.detachCapacity(mesh, nid)

            dtmax = dtg
            for nid in ids:
                dn = mesh.rcv[nid]
                ratediff = mesh.dzdt[dn] - mesh.dzdt[nid]
                if mesh.boundary[dn] != 0:
                    ratediff -= uplift.getRate(nid)
                if ratediff > 0.0 and mesh.elev[nid] > mesh.elev[dn]:
                    dt = (mesh.elev[nid] - mesh.elev[dn]) / ratediff * frac
                    dtmax = min(dtmax, max(dt, dtmin))
            dtmax = self._clampStep(dtmax, dtg, 1.0e-7)

            for nid in ids:
                ret = mesh.eroDepTotal(nid, mesh.dzdt[nid] * dtmax, time)
                self.sedOut -= ret.sum() * mesh.vArea[nid]

            self.subSteps.append(dtmax)
            dtg -= dtmax
            time += dtmax

        self._report("detachment-limited erosion with uplift", t0)

        return

    def streamErode(self, dtg, strmNet, time=0.0):
        """
        Detachment or transport-limited erosion for a single grain size.

        For each node, the potential erosion or deposition rate is the difference between the incoming sediment flux and the transport capacity divided by the Voronoi area. On bedrock nodes erosion is limited by the detachment capacity. Nodes are processed from upstream to downstream so that incoming fluxes are known when a node is visited.

        The sub-step is 0.3 of the time to flattening with a minimum of 1e-8.

        :arg dtg: global time increment
        :arg strmNet: `StreamNet` object
        :arg time: current time used to date the stratigraphic layers
        """

        self._checkLaws(strmNet)
        t0 = process_time()
        frac = 0.3
        mesh = self.mesh
        strmNet.sortNodesByNetOrder()
        self._prepare(strmNet)
        ids = mesh.activeIDs
        outlets = mesh.boundary != 0
        inlet = strmNet.getInletNode()
        inload = strmNet.getInSedLoad()
        smallflag = False

        while dtg > 0.0:
            # Potential erosion and deposition rates
            mesh.Qsin.fill(0.0)
            mesh.drdt.fill(0.0)
            if inlet is not None:
                mesh.Qsin[inlet] = inload
            for nid in ids:
                cap = self.sedTrans.transCapacity(mesh, nid)
                pedr = (mesh.Qsin[nid] - cap) / mesh.vArea[nid]
                if mesh.onBedrock(nid):
                    dcap = -self.bedErode.detachCapacity(mesh, nid)
                    if pedr < 0.0 and dcap > pedr:
                        pedr = dcap
                mesh.dzdt[nid] = pedr
                mesh.Qsin[mesh.rcv[nid]] += mesh.Qsin[nid] - pedr * mesh.vArea[nid]

            # Time to flattening
            dtmax = dtg / frac
            for nid in ids:
                dn = mesh.rcv[nid]
                ratediff = mesh.dzdt[dn] - mesh.dzdt[nid]
                if ratediff > 0.0 and mesh.elev[nid] > mesh.elev[dn]:
                    dt = (mesh.elev[nid] - mesh.elev[dn]) / ratediff
                    if dt < dtmax:
                        dtmax = dt
            dtmax = self._floorStep(dtmax * frac, 1.0e-8)
            if dtmax <= 0.01 and not smallflag:
                smallflag = True
                print("SMALL STEP: {}".format(dtmax), flush=True)
            dtmax = self._clampStep(dtmax, dtg, 1.0e-6)

            # Apply erosion and deposition
            mesh.Qsin.fill(0.0)
            if inlet is not None:
                mesh.Qsin[inlet] = inload
            for nid in ids:
                dz = (mesh.Qsin[nid] - mesh.Qs[nid]) / mesh.vArea[nid] * dtmax
                if dz < 0.0 and mesh.onBedrock(nid):
                    # Bedrock erosion is limited by the detachment capacity
                    dzr = mesh.drdt[nid] * dtmax
                    alluv = mesh.alluvThickness(nid)
                    if -dz > -dzr + alluv:
                        dz = dzr - alluv
                ret = mesh.eroDepTotal(nid, dz, time + dtmax)
                mesh.Qsin[mesh.rcv[nid]] += (
                    mesh.Qsin[nid] - ret.sum() * mesh.vArea[nid] / dtmax
                )
            self.sedOut += mesh.Qsin[outlets].sum() * dtmax

            self.subSteps.append(dtmax)
            dtg -= dtmax
            time += dtmax

        self._report("stream erosion", t0)

        return

    def streamErodeMulti(self, dtg, strmNet, time=0.0):
        """
        Transport-limited erosion for multiple grain sizes.

        Fluxes, capacities and erosion or deposition depths are computed for each grain size. Bedrock is only scoured when the surface layer is bedrock or when the active layer is thinner than the maximum regolith depth and lies directly on bedrock. Scoured bedrock is distributed among grain sizes following the grading of the bedrock layer.

        :arg dtg: global time increment
        :arg strmNet: `StreamNet` object
        :arg time: current time used to date the stratigraphic layers
        """

        self._checkLaws(strmNet)
        t0 = process_time()
        frac = 0.3
        mesh = self.mesh
        strmNet.sortNodesByNetOrder()
        self._prepare(strmNet)
        ids = mesh.activeIDs
        outlets = mesh.boundary != 0
        inlet = strmNet.getInletNode()
        inload = strmNet.getInSedLoad()
        insed = strmNet.getInSedLoadm()
        maxregdep = mesh.maxregdep

        while dtg > 0.0:
            mesh.Qsin.fill(0.0)
            mesh.Qs.fill(0.0)
            mesh.QsinM.fill(0.0)
            mesh.QsM.fill(0.0)
            mesh.drdt.fill(0.0)
            if inlet is not None:
                mesh.Qsin[inlet] = inload
                mesh.QsinM[inlet] = insed

            for nid in ids:
                if mesh.getLayerSed(nid, 0) > 0:
                    cap = self.sedTrans.transCapacity(mesh, nid)
                    pedr = (mesh.Qsin[nid] - cap) / mesh.vArea[nid]
                    depth0 = mesh.getLayerDepth(nid, 0)
                    if (
                        mesh.getLayerSed(nid, 1) == 0
                        and pedr < 0.0
                        and abs(depth0 - maxregdep) > 0.001
                    ):
                        # Thin active layer, scour the bedrock below
                        pedr -= self.bedErode.detachCapacity(mesh, nid) * (
                            1.0 - depth0 / maxregdep
                        )
                else:
                    pedr = -self.bedErode.detachCapacity(mesh, nid)
                mesh.dzdt[nid] = pedr
                mesh.Qsin[mesh.rcv[nid]] += mesh.Qsin[nid] - pedr * mesh.vArea[nid]

            dtmax = dtg / frac
            tiny = False
            for nid in ids:
                dn = mesh.rcv[nid]
                ratediff = mesh.dzdt[dn] - mesh.dzdt[nid]
                if ratediff > 0.0 and mesh.elev[nid] > mesh.elev[dn]:
                    dt = (mesh.elev[nid] - mesh.elev[dn]) / ratediff
                    if dt < dtmax:
                        dtmax = dt
                    if dt < 1.0e-6:
                        tiny = True
            dtmax *= frac
            if tiny:
                if self.verbose:
                    print("Very small time to flattening, step reset.", flush=True)
                dtmax = self._floorStep(dtmax, 0.0015)
            elif self.minDt is not None:
                dtmax = self._floorStep(dtmax, 0.0)
            dtmax = self._clampStep(dtmax, dtg, 1.0e-6)

            mesh.Qsin.fill(0.0)
            mesh.QsinM.fill(0.0)
            if inlet is not None:
                mesh.Qsin[inlet] = inload
                mesh.QsinM[inlet] = insed

            time += dtmax
            for nid in ids:
                area = mesh.vArea[nid]
                dz = (mesh.QsinM[nid] - mesh.QsM[nid]) / area * dtmax
                dzt = dz.sum()
                retbr = np.zeros(mesh.numg)
                retsed = np.zeros(mesh.numg)

                depth0 = mesh.getLayerDepth(nid, 0)
                if mesh.getLayerSed(nid, 0) < 1:
                    dzr = mesh.drdt[nid] * mesh.getLayerFractions(nid, 0) * dtmax
                    if dzr.sum() < 0.0:
                        retbr = mesh.eroDep(nid, 0, dzr, time)
                elif (
                    abs(depth0 - maxregdep) > 0.001
                    and dzt < 0.0
                    and mesh.getLayerSed(nid, 1) < 1
                ):
                    dzr = (
                        mesh.drdt[nid]
                        * mesh.getLayerFractions(nid, 1)
                        * dtmax
                        * (maxregdep - depth0)
                        / maxregdep
                    )
                    if dzr.sum() < 0.0:
                        retbr = mesh.eroDep(nid, 1, dzr, time)

                if np.any(dz != 0.0):
                    retsed = mesh.eroDep(nid, 0, dz, time)

                dn = mesh.rcv[nid]
                out = mesh.QsinM[nid] - (retbr + retsed) * area / dtmax
                mesh.QsinM[dn] += out
                mesh.Qsin[dn] += out.sum()
            self.sedOut += mesh.QsinM[outlets].sum() * dtmax

            self.subSteps.append(dtmax)
            dtg -= dtmax

        self._report("multi grain size stream erosion", t0)

        return

    def _columnCapacity(self, mesh, nid):
        """
        Transport capacity integrated over the channel depth, each layer being weighted by the proportion of the depth it occupies.

        :return: qs, lyr the capacity and the layer on which detachment is evaluated
        """

        chanDepth = mesh.chanDepth[nid]
        depck = 0.0
        qs = 0.0
        i = 0
        nlayers = mesh.getNumLayer(nid)
        while chanDepth - depck > 1.0e-4 and i < nlayers:
            ldepth = mesh.getLayerDepth(nid, i)
            if depck + ldepth <= chanDepth:
                weight = ldepth / chanDepth
            else:
                weight = 1.0 - depck / chanDepth
            qs += self.sedTrans.transCapacityWeighted(mesh, nid, i, weight)
            depck += ldepth
            i += 1

        if depck > chanDepth:
            return qs, i - 1

        return qs, i

    def detachErode(self, dtg, strmNet, time=0.0):
        """
        Combined detachment and transport algorithm for multiple grain sizes.

        Transport capacity is integrated over the layers spanned by the channel depth. A node is detachment-limited when the detachment capacity cannot supply the excess transport capacity (capacity minus incoming flux per unit area) and transport-limited otherwise:

        - in the detachment-limited case, the detached depth is removed by walking down the layers, each grain size being limited by its own incoming flux minus capacity,
        - in the transport-limited case, the per grain size excess capacity is removed from successive layers until satisfied,
        - deposition always builds the surface layer from the per grain size mass balance.

        Nothing happens when rainfall does not exceed infiltration.

        :arg dtg: global time increment
        :arg strmNet: `StreamNet` object
        :arg time: current time used to date the stratigraphic layers
        """

        self._checkLaws(strmNet)
        if strmNet.getRainRate() - strmNet.getInfilt() <= 0.0:
            self.subSteps = []
            self.sedOut = 0.0
            if self.verbose:
                print("No runoff, erosion skipped.", flush=True)
            return

        t0 = process_time()
        frac = 0.3
        mesh = self.mesh
        strmNet.sortNodesByNetOrder()
        self._prepare(strmNet)
        ids = mesh.activeIDs
        outlets = mesh.boundary != 0
        inlet = strmNet.getInletNode()
        inload = strmNet.getInSedLoad()
        insed = strmNet.getInSedLoadm()

        while dtg > 0.0:
            mesh.Qs.fill(0.0)
            mesh.Qsin.fill(0.0)
            mesh.QsM.fill(0.0)
            mesh.QsinM.fill(0.0)
            if inlet is not None:
                mesh.Qsin[inlet] = inload
                mesh.QsinM[inlet] = insed

            for nid in ids:
                qs, lyr = self._columnCapacity(mesh, nid)
                drdt = -self.bedErode.detachCapacity(mesh, nid, lyr)
                mesh.drdt[nid] = drdt
                mesh.dzdt[nid] = drdt
                excap = (qs - mesh.Qsin[nid]) / mesh.vArea[nid]
                if -drdt > excap:
                    mesh.dzdt[nid] = -excap
                mesh.Qsin[mesh.rcv[nid]] += (
                    mesh.Qsin[nid] - mesh.dzdt[nid] * mesh.vArea[nid]
                )

            dtmax = dtg / frac
            tiny = False
            for nid in ids:
                dn = mesh.rcv[nid]
                ratediff = mesh.dzdt[dn] - mesh.dzdt[nid]
                if ratediff > 0.0 and mesh.getSlope(nid) > 1.0e-7:
                    dt = (mesh.elev[nid] - mesh.elev[dn]) / ratediff
                    if dt < dtmax:
                        dtmax = dt
                    if dt < 1.0e-4:
                        tiny = True
            dtmax *= frac
            if tiny:
                dtmax = self._floorStep(dtmax, 3.0e-5)
            elif self.minDt is not None:
                dtmax = self._floorStep(dtmax, 0.0)
            dtmax = self._clampStep(dtmax, dtg, 1.0e-6)

            mesh.QsinM.fill(0.0)
            if inlet is not None:
                mesh.QsinM[inlet] = insed

            time += dtmax
            for nid in ids:
                self._detachErodeNode(mesh, nid, dtmax, time)
            self.sedOut += mesh.QsinM[outlets].sum() * dtmax

            self.subSteps.append(dtmax)
            dtg -= dtmax

        self._report("detachment and transport erosion", t0)

        return

    def _detachErodeNode(self, mesh, nid, dtmax, time):
        """
        Applies erosion or deposition at a node for one sub-step of `detachErode` and forwards the realised flux of each grain size to the receiver.
        """

        area = mesh.vArea[nid]
        dn = mesh.rcv[nid]
        chanDepth = mesh.chanDepth[nid]
        excap = (mesh.Qs[nid] - mesh.Qsin[nid]) / area
        detachLim = -mesh.drdt[nid] < excap
        if detachLim:
            dz = mesh.drdt[nid] * dtmax
        else:
            dz = -excap * dtmax

        mesh.QsinM[dn] += mesh.QsinM[nid]

        if dz < 0.0 and detachLim:
            i = 0
            depck = 0.0
            while dz < -1.0e-9 and depck < chanDepth and i < mesh.getNumLayer(nid):
                ldepth = mesh.getLayerDepth(nid, i)
                depck += ldepth
                # Per size removal is limited by incoming flux minus capacity
                limit = (mesh.QsinM[nid] - mesh.QsM[nid]) * dtmax / area
                if -dz <= ldepth:
                    erolist = dz * mesh.getLayerFractions(nid, i)
                    capped = erolist < limit
                    erolist[capped] = limit[capped]
                    mesh.QsinM[nid, capped] = 0.0
                    mesh.QsM[nid, capped] = 0.0
                    ret = mesh.eroDep(nid, i, erolist, time)
                    mesh.QsinM[dn] -= ret * area / dtmax
                    dz = 0.0
                else:
                    erolist = -mesh.layers[nid][i].dgrade.copy()
                    capped = erolist < limit
                    erolist[capped] = limit[capped]
                    mesh.QsinM[nid, capped] = 0.0
                    mesh.QsM[nid, capped] = 0.0
                    dz -= erolist.sum()
                    ret = mesh.eroDep(nid, i, erolist, time)
                    mesh.QsinM[dn] -= ret * area / dtmax
                    if np.any(capped):
                        i += 1
        elif dz < 0.0:
            erolist = (mesh.QsinM[nid] - mesh.QsM[nid]) * dtmax / area
            i = 0
            depck = 0.0
            while depck < chanDepth and i < mesh.getNumLayer(nid):
                depck += mesh.getLayerDepth(nid, i)
                nlayers = mesh.getNumLayer(nid)
                ret = mesh.eroDep(nid, i, erolist, time)
                mesh.QsinM[dn] -= ret * area / dtmax
                erolist -= ret
                if erolist.sum() > -1.0e-7:
                    break
                if nlayers == mesh.getNumLayer(nid):
                    i += 1
        elif dz > 0.0:
            erolist = (mesh.QsinM[nid] - mesh.QsM[nid]) * dtmax / area
            ret = mesh.eroDep(nid, 0, erolist, time)
            mesh.QsinM[dn] -= ret * area / dtmax

        return

    def updateExposureTime(self, dtg):
        """
        Increments the exposure time of the surface layer of every active node.
        """

        for nid in self.mesh.activeIDs:
            self.mesh.layers[nid].addExposureTime(dtg)

        return

    def densifyMesh(self, time):
        """
        Requests new nodes around every active node where the sediment flux resulting from local erosion or deposition (Voronoi area times erosion rate) exceeds the `maxflux` threshold.

        :arg time: current time

        :return: list of nodes that triggered a refinement
        """

        if self.maxflux is None:
            return []

        mesh = self.mesh
        ids = mesh.activeIDs
        flux = np.abs(mesh.vArea[ids] * mesh.dzdt[ids])
        if len(flux) > 0 and self.verbose:
            print("Max node flux: {}".format(flux.max()), flush=True)

        refine = [int(nid) for nid in ids[flux > self.maxflux]]
        for nid in refine:
            mesh.addNodesAround(nid, time)

        return refine
