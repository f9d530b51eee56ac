from ..tools.inputparser import readItem

# Number of seconds in one year
SECPERYEAR = 365.25 * 24 * 3600.0


class BedErode(object):
    """
    Interface shared by the bedrock detachment capacity laws.

    Every law is built once from the input file and exposes:

    - `detachDepth(mesh, nid, dt)`: detachment depth over a time interval,
    - `detachCapacity(mesh, nid, lyr=0)`: detachment rate using the erodibility of layer `lyr`,
    - `setTimeStep(mesh, nid)`: maximum stable time step for explicit integration.
    """

    def detachDepth(self, mesh, nid, dt):
        raise NotImplementedError

    def detachCapacity(self, mesh, nid, lyr=0):
        raise NotImplementedError

    def setTimeStep(self, mesh, nid):
        raise NotImplementedError


class BedErodePwrLaw(BedErode):
    r"""
    Power law for bedrock detachment capacity based on the excess shear stress:

    .. math::

        \tau = k_t \left( \frac{Q}{W} \right)^{m_b} S^{n_b}

        D_c = k_e \left( \tau - \tau_c \right)^{p_b}

    where :math:`k_e` is the erodibility of the layer being detached and :math:`\tau_c` the critical shear stress of the node (or the default `taucd` when nodes do not define their own).

    Discharge is provided in m3/yr and the shear coefficient `kt` is given in SI units, it is converted once at construction by the factor :math:`SECPERYEAR^{-m_b}`.

    :arg input: parsed YAML mapping (section `detachment`)
    """

    def __init__(self, input):

        self.kb = readItem(input, "detachment", "kb", required=True)
        self.kt = readItem(input, "detachment", "kt", required=True)
        self.mb = readItem(input, "detachment", "mb", required=True)
        self.nb = readItem(input, "detachment", "nb", required=True)
        self.pb = readItem(input, "detachment", "pb", 1.0)
        self.taucd = readItem(input, "detachment", "taucd", 0.0)

        # Convert (Q/W)^mb from years to seconds
        self.kt = self.kt * SECPERYEAR ** (-self.mb)

        return

    def _critShear(self, mesh, nid):
        if mesh.tauc is None:
            return self.taucd

        return mesh.tauc[nid]

    def _shearStress(self, mesh, nid, slp):
        width = mesh.hydrWidth[nid]
        if width > 0.0:
            q = mesh.discharge[nid] / width
        else:
            q = 0.0

        return self.kt * q ** self.mb * slp ** self.nb

    def _detachRate(self, mesh, nid, lyr):
        """
        Detachment rate of layer `lyr` at node `nid` (positive value).
        """

        if mesh.flood[nid]:
            return 0.0

        slp = mesh.getSlope(nid)
        if slp < 0.0:
            raise ValueError(
                "Negative slope ({}) at node {} in bedrock detachment law.".format(
                    slp, nid
                )
            )

        tau = self._shearStress(mesh, nid, slp)
        mesh.tau[nid] = tau
        tauex = max(0.0, tau - self._critShear(mesh, nid))
        lyr = min(lyr, mesh.getNumLayer(nid) - 1)

        return mesh.getLayerErody(nid, lyr) * tauex ** self.pb

    def detachDepth(self, mesh, nid, dt):
        """
        Depth of bedrock detached from the surface layer over `dt`.
        """

        return self._detachRate(mesh, nid, 0) * dt

    def detachCapacity(self, mesh, nid, lyr=0):
        """
        Detachment rate using the erodibility of layer `lyr`. The signed rate is stored on the node `drdt` field.

        :arg mesh: `UnstMesh` object
        :arg nid: node index
        :arg lyr: layer index

        :return: rate (m/yr)
        """

        rate = self._detachRate(mesh, nid, lyr)
        mesh.drdt[nid] = -rate

        return rate

    def setTimeStep(self, mesh, nid):
        """
        Courant-type estimate of the maximum time step obtained by linearising the detachment law at the current slope.

        :return: time step, a large sentinel (1e5) when the linearised term vanishes
        """

        slp = mesh.getSlope(nid)
        if slp < 0.0:
            raise ValueError(
                "Negative slope ({}) at node {} in detachment time step.".format(
                    slp, nid
                )
            )
        if slp == 0.0:
            return 1.0e5

        eroterm = self.kb * mesh.discharge[nid] ** self.mb * slp ** (self.nb - 1.0)
        if eroterm == 0.0:
            return 1.0e5

        return 0.2 * mesh.flowLen[nid] / eroterm


class BedErodePwrLawMulti(BedErodePwrLaw):
    """
    Multiple grain sizes version of the bedrock detachment power law.

    The detachment rate is the same as for `BedErodePwrLaw`, it is in addition partitioned among grain sizes following the grading of the detached layer and stored in the node `drdtM` field.
    """

    def detachCapacity(self, mesh, nid, lyr=0):

        rate = BedErodePwrLaw.detachCapacity(self, mesh, nid, lyr)
        lyr = min(lyr, mesh.getNumLayer(nid) - 1)
        mesh.drdtM[nid] = -rate * mesh.getLayerFractions(nid, lyr)

        return rate
