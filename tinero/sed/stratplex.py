import numpy as np

# Thickness given to the basal bedrock layer (acts as an infinite reservoir)
BEDROCK_DEPTH = 1.0e6

# Layers thinner than this are considered empty and removed from the column
MIN_LAYER_DEPTH = 1.0e-12


class Layer(object):
    """
    A single stratigraphic layer of a node column.

    The layer stores the thickness of each grain size in `dgrade`. Its total depth is the sum of these thicknesses so that the grain size fractions of a non-empty layer always sum to one.

    :arg dgrade: thickness of each grain size (m)
    :arg erody: erodibility coefficient of the layer
    :arg sed: 1 for sediment, 0 for bedrock
    :arg ctime: creation time
    :arg rtime: most recent time the layer was eroded or deposited on
    :arg etime: cumulative exposure time at the surface
    """

    def __init__(self, dgrade, erody, sed, ctime=0.0, rtime=0.0, etime=0.0):

        self.dgrade = np.array(dgrade, dtype=np.float64, ndmin=1)
        self.erody = erody
        self.sed = int(sed)
        self.ctime = ctime
        self.rtime = rtime
        self.etime = etime

        return

    @property
    def depth(self):
        return float(self.dgrade.sum())

    def fractions(self):
        """
        Grain size fractions of the layer (zeros for an empty layer).
        """

        depth = self.depth
        if depth <= 0.0:
            return np.zeros_like(self.dgrade)

        return self.dgrade / depth

    def copy(self):
        return Layer(
            self.dgrade.copy(), self.erody, self.sed, self.ctime, self.rtime, self.etime
        )


class LayerStack(object):
    """
    This class encapsulates the stratigraphic column below a single mesh vertex. Layers are ordered from the surface (index 0) downward and the column always ends with a bedrock layer.

    The only way the erosion engine modifies a column is through the erosion/deposition contract `erodep`, which:

    - removes or adds a given thickness of each grain size at a given layer index,
    - records the provided time on the modified layer,
    - returns the thickness per grain size that was actually removed (negative) or added (positive),
    - never lets a layer thickness go negative and is a no-op for zero-depth requests.

    The surface sediment layer plays the role of the **active layer** and its thickness is kept at most equal to the maximum regolith depth `maxregdep`: extra deposits are pushed into the sediment layer below and an eroded active layer is replenished from the sediment layer beneath it.

    :arg numg: number of grain sizes
    :arg maxregdep: maximum regolith (active layer) depth
    :arg erodySed: erodibility given to newly deposited sediment layers
    :arg layers: initial list of `Layer` objects (surface first)
    """

    def __init__(self, numg, maxregdep, erodySed, layers=None):

        self.numg = int(numg)
        self.maxregdep = maxregdep
        self.erodySed = erodySed
        if layers is None:
            self.layers = []
        else:
            self.layers = list(layers)

        return

    def __len__(self):
        return len(self.layers)

    def __getitem__(self, i):
        return self.layers[i]

    def getNumLayer(self):
        return len(self.layers)

    def getLayerDepth(self, i):
        return self.layers[i].depth

    def getLayerDgrade(self, i, j):
        return self.layers[i].dgrade[j]

    def getLayerErody(self, i):
        return self.layers[i].erody

    def getLayerSed(self, i):
        """
        Sediment flag of layer `i`; a missing layer is reported as bedrock.
        """

        if i >= len(self.layers):
            return 0

        return self.layers[i].sed

    def getLayerFractions(self, i):
        return self.layers[i].fractions()

    def onBedrock(self):
        """
        A column is on bedrock when its surface layer is bedrock.
        """

        return self.getLayerSed(0) == 0

    def alluvThickness(self):
        """
        Thickness of sediment lying above the first bedrock layer.
        """

        thick = 0.0
        for layer in self.layers:
            if layer.sed == 0:
                break
            thick += layer.depth

        return thick

    def addExposureTime(self, dt):
        self.layers[0].etime += dt

        return

    def erodep(self, lyr, dz, time):
        """
        Erodes or deposits a thickness of each grain size at layer `lyr`.

        Negative entries in `dz` are erosion, positive ones deposition. Erosion of a given size is limited to what the layer holds. Deposition on a bedrock surface creates a new sediment layer.

        :arg lyr: index of the layer to modify
        :arg dz: thickness change requested for each grain size
        :arg time: time recorded on the modified layer

        :return: ret thickness change actually applied for each grain size
        """

        ret = np.zeros(self.numg, dtype=np.float64)
        dz = np.array(dz, dtype=np.float64, ndmin=1)
        if lyr >= len(self.layers) or not np.any(dz):
            return ret

        layer = self.layers[lyr]

        # Erosion is limited by the thickness available for each size
        ero = np.minimum(dz, 0.0)
        removed = np.minimum(-ero, layer.dgrade)
        layer.dgrade -= removed
        layer.dgrade[layer.dgrade < 0.0] = 0.0
        ret -= removed

        depo = np.maximum(dz, 0.0)
        if depo.sum() > 0.0:
            if lyr == 0 and layer.sed == 0:
                self.layers.insert(
                    0, Layer(depo, self.erodySed, 1, ctime=time, rtime=time)
                )
            else:
                layer.dgrade += depo
            ret += depo
        layer.rtime = time

        self._removeEmptyLayers()
        if lyr <= 1:
            self._updateActiveLayer(time)

        return ret

    def erodepTotal(self, dz, time):
        """
        Erodes or deposits a total thickness `dz` from the top of the column.

        Deposits take the texture of the surface layer. Erosion removes material from successive layers following the texture of each eroded layer.

        :arg dz: total thickness change (negative for erosion)
        :arg time: time recorded on the modified layers

        :return: ret thickness change actually applied for each grain size
        """

        ret = np.zeros(self.numg, dtype=np.float64)
        if dz == 0.0 or len(self.layers) == 0:
            return ret

        if dz > 0.0:
            frac = self.layers[0].fractions()
            if frac.sum() <= 0.0:
                frac = np.zeros(self.numg)
                frac[0] = 1.0
            return self.erodep(0, dz * frac, time)

        remaining = -dz
        while remaining > MIN_LAYER_DEPTH and len(self.layers) > 0:
            top = self.layers[0]
            take = min(remaining, top.depth)
            if take <= 0.0:
                break
            step = self.erodep(0, -take * top.fractions(), time)
            if step.sum() >= 0.0:
                break
            ret += step
            remaining += step.sum()

        return ret

    def _removeEmptyLayers(self):
        """
        Drops layers left without material; the basal layer is always kept.
        """

        self.layers = [
            layer
            for k, layer in enumerate(self.layers)
            if layer.depth > MIN_LAYER_DEPTH or k == len(self.layers) - 1
        ]

        return

    def _updateActiveLayer(self, time):
        """
        Keeps the surface sediment layer at most `maxregdep` thick and replenishes it from the sediment layer underneath when it becomes thinner.
        """

        if self.maxregdep is None or self.maxregdep <= 0.0:
            return
        if len(self.layers) == 0 or self.layers[0].sed == 0:
            return

        top = self.layers[0]
        depth = top.depth
        if depth > self.maxregdep:
            excess = top.fractions() * (depth - self.maxregdep)
            top.dgrade -= excess
            if len(self.layers) > 1 and self.layers[1].sed == 1:
                self.layers[1].dgrade += excess
            else:
                self.layers.insert(
                    1, Layer(excess, top.erody, 1, ctime=top.ctime, rtime=time)
                )
        elif depth < self.maxregdep and len(self.layers) > 1:
            below = self.layers[1]
            if below.sed == 1:
                take = min(self.maxregdep - depth, below.depth)
                moved = below.fractions() * take
                below.dgrade -= moved
                below.dgrade[below.dgrade < 0.0] = 0.0
                top.dgrade += moved
                self._removeEmptyLayers()

        return


def buildColumn(numg, maxregdep, regdep, erody, erodySed, brgrade, time=0.0):
    """
    Builds the initial column of a node: an optional regolith layer of thickness `regdep` above a bedrock layer.

    :arg numg: number of grain sizes
    :arg maxregdep: maximum regolith depth
    :arg regdep: initial regolith thickness
    :arg erody: bedrock erodibility
    :arg erodySed: sediment erodibility
    :arg brgrade: grain size fractions of the bedrock (and initial regolith)
    :arg time: creation time of the layers

    :return: LayerStack
    """

    brgrade = np.asarray(brgrade, dtype=np.float64)
    layers = []
    if regdep > 0.0:
        layers.append(Layer(brgrade * regdep, erodySed, 1, ctime=time, rtime=time))
    layers.append(Layer(brgrade * BEDROCK_DEPTH, erody, 0, ctime=time, rtime=time))
    column = LayerStack(numg, maxregdep, erodySed, layers)
    column._updateActiveLayer(time)

    return column
