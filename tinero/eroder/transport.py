import warnings
import numpy as np

from ..tools.inputparser import readItem
from .detachment import SECPERYEAR

RHO = 1000.0
RHOSED = 2650.0
GRAV = 9.81
YEARPERSEC = 3.171e-8

# Maximum number of grain size classes
MAXGRAINS = 9


class SedTrans(object):
    """
    Interface shared by the sediment transport capacity laws.

    - `transCapacity(mesh, nid)` computes the capacity of the whole node from its surface layer and writes the node `Qs` and `QsM` fields,
    - `transCapacityWeighted(mesh, nid, lyr, weight)` computes the capacity associated with layer `lyr` weighted by `weight` and **adds** it to the node per grain size capacities `QsM`. The caller needs to reset `QsM` before looping over layers.

    Capacities are volumetric rates in m3/yr.
    """

    def transCapacity(self, mesh, nid):
        raise NotImplementedError

    def transCapacityWeighted(self, mesh, nid, lyr, weight):
        raise NotImplementedError


def _specificDischarge(mesh, nid):
    width = mesh.hydrWidth[nid]
    if width > 0.0:
        return mesh.discharge[nid] / width

    return 0.0


class SedTransPwrLaw(SedTrans):
    r"""
    Single grain size transport capacity following an excess shear stress power law:

    .. math::

        Q_c = k_f W \left( k_t \left( \frac{Q}{W} \right)^{m_f} S^{n_f} - \tau_c \right)^{p_f}

    :arg input: parsed YAML mapping (section `transport`)
    """

    def __init__(self, input):

        self.kf = readItem(input, "transport", "kf", required=True)
        self.kt = readItem(input, "transport", "kt", required=True)
        self.mf = readItem(input, "transport", "mf", required=True)
        self.nf = readItem(input, "transport", "nf", required=True)
        self.pf = readItem(input, "transport", "pf", 1.0)
        self.tauc = readItem(input, "transport", "taucd", 0.0)

        # Convert (Q/W)^mf from years to seconds
        self.kt = self.kt * SECPERYEAR ** (-self.mf)

        return

    def _capacity(self, mesh, nid, weight):

        slp = mesh.getSlope(nid)
        if slp < 0.0:
            raise ValueError(
                "Negative slope ({}) at node {} in power law transport capacity.".format(
                    slp, nid
                )
            )
        if mesh.flood[nid]:
            return 0.0

        tau = self.kt * _specificDischarge(mesh, nid) ** self.mf * slp ** self.nf
        mesh.tau[nid] = tau
        tauex = max(0.0, tau - self.tauc)

        return weight * self.kf * mesh.hydrWidth[nid] * tauex ** self.pf

    def transCapacity(self, mesh, nid):

        cap = self._capacity(mesh, nid, 1.0)
        mesh.Qs[nid] = cap
        mesh.QsM[nid] = cap * mesh.getLayerFractions(nid, 0)

        return cap

    def transCapacityWeighted(self, mesh, nid, lyr, weight):

        cap = self._capacity(mesh, nid, weight)
        mesh.QsM[nid] += cap * mesh.getLayerFractions(nid, lyr)
        mesh.Qs[nid] = mesh.QsM[nid].sum()

        return cap


class SedTransPwrLawMulti(SedTrans):
    r"""
    Multiple grain sizes version of the transport capacity power law with hiding and protrusion effects.

    For each size class :math:`i` of diameter :math:`D_i` and fraction :math:`f_i` in the layer:

    .. math::

        \tau_{c,i} = 0.045 (\rho_s - \rho) g D_i \left( \frac{D_i}{D_{50}} \right)^{-h}

        Q_{c,i} = f_i \, w \, k_f W \left( \tau - \tau_{c,i} \right)^{p_f}

    where :math:`D_{50}` is the fraction weighted mean diameter of the layer, :math:`h` the hiding exponent and :math:`w` the layer weight.

    .. note::

        On flooded nodes the slope is set to zero before computing the shear stress. The capacity is therefore not forced to zero.

    :arg input: parsed YAML mapping (sections `transport`, `grains` and `domain`)
    """

    def __init__(self, input):

        self.kf = readItem(input, "transport", "kf", required=True)
        self.kt = readItem(input, "transport", "kt", required=True)
        self.mf = readItem(input, "transport", "mf", required=True)
        self.nf = readItem(input, "transport", "nf", required=True)
        self.pf = readItem(input, "transport", "pf", 1.0)
        self.numg = readItem(input, "domain", "numgrn", 1)
        if self.numg > MAXGRAINS:
            warnings.warn(
                "Maximum of {} grain size classes exceeded, resetting to {}.".format(
                    MAXGRAINS, MAXGRAINS
                )
            )
            self.numg = MAXGRAINS

        diameters = readItem(input, "grains", "diameters", required=True)
        if len(diameters) < self.numg:
            raise ValueError("A diameter is required for each grain size.")
        self.grndiam = np.array(diameters[: self.numg], dtype=np.float64)
        self.taucref = 0.045 * (RHOSED - RHO) * GRAV * self.grndiam
        self.hidingexp = readItem(input, "grains", "hidingexp", required=True)

        self.kt = self.kt * SECPERYEAR ** (-self.mf)

        return

    def transCapacityWeighted(self, mesh, nid, lyr, weight):

        slp = mesh.getSlope(nid)
        if slp < 0.0:
            raise ValueError(
                "Negative slope ({}) at node {} in multi-size transport capacity.".format(
                    slp, nid
                )
            )

        frac = mesh.getLayerFractions(nid, lyr)[: self.numg]
        d50 = (frac * self.grndiam).sum()
        if d50 <= 0.0:
            return 0.0

        if mesh.flood[nid]:
            slp = 0.0
        tau = self.kt * _specificDischarge(mesh, nid) ** self.mf * slp ** self.nf
        mesh.tau[nid] = tau

        tauc = self.taucref * (self.grndiam / d50) ** (-self.hidingexp)
        tauex = np.maximum(0.0, tau - tauc)
        cap = frac * weight * self.kf * mesh.hydrWidth[nid] * tauex ** self.pf
        mesh.QsM[nid, : self.numg] += cap
        mesh.Qs[nid] = mesh.QsM[nid].sum()

        return cap.sum()

    def transCapacity(self, mesh, nid):
        """
        Whole node capacity obtained from the surface layer with a unit weight.
        """

        mesh.QsM[nid] = 0.0
        mesh.Qs[nid] = 0.0

        return self.transCapacityWeighted(mesh, nid, 0, 1.0)


class SedTransFractional(SedTrans):
    """
    Shared critical shear stress definition of the two-fraction (sand and gravel) laws.

    The critical shear stress of each fraction depends on the proportion of sand `p` in the reference layer: a low value is used below 10% sand, a high value above 40% and a linear interpolation in between.

    :arg input: parsed YAML mapping (sections `grains` and `domain`)
    """

    def __init__(self, input):

        numg = readItem(input, "domain", "numgrn", 1)
        if numg != 2:
            raise ValueError(
                "{} transport law requires exactly 2 grain sizes.".format(
                    self.__class__.__name__
                )
            )
        diameters = readItem(input, "grains", "diameters", required=True)
        if len(diameters) < 2:
            raise ValueError("Sand and gravel diameters are required.")
        self.grade = np.array(diameters[:2], dtype=np.float64)

        self.taudim = RHO * GRAV
        self.refs = (RHOSED - RHO) * 9.81 * self.grade[0]
        self.refg = (RHOSED - RHO) * 9.81 * self.grade[1]
        self.lowtaucs = 0.8 * (self.grade[1] / self.grade[0]) * 0.040 * self.refs * 0.8531
        self.lowtaucg = 0.04 * self.refg * 0.8531
        self.hightaucs = 0.04 * self.refs * 0.8531
        self.hightaucg = 0.01 * self.refg * 0.8531

        # Slopes and intercepts of the linear part
        self.sands = (self.lowtaucs - self.hightaucs) / (-0.3)
        self.sandb = self.lowtaucs - (self.sands * 0.1)
        self.gravs = (self.lowtaucg - self.hightaucg) / (-0.3)
        self.gravb = self.lowtaucg - (self.gravs * 0.1)

        return

    def critShear(self, persand):
        """
        Critical shear stress of the sand and gravel fractions.

        :arg persand: proportion of sand in the layer

        :return: taucs, taucg
        """

        if persand < 0.10:
            return self.lowtaucs, self.lowtaucg
        elif persand <= 0.40:
            return (
                self.sands * persand + self.sandb,
                self.gravs * persand + self.gravb,
            )

        return self.hightaucs, self.hightaucg

    def _layerSand(self, mesh, nid, lyr):
        depth = mesh.getLayerDepth(nid, lyr)
        if depth <= 0.0:
            raise ValueError(
                "Layer {} of node {} has a null thickness.".format(lyr, nid)
            )

        return mesh.getLayerDgrade(nid, lyr, 0) / depth

    def _shearWeighted(self, mesh, nid, slp):
        return (
            self.taudim
            * 0.03 ** 0.6
            * (mesh.discharge[nid] / SECPERYEAR) ** 0.3
            * slp ** 0.7
        )

    def _resetNode(self, mesh, nid):
        mesh.QsM[nid] = 0.0
        mesh.Qs[nid] = 0.0

        return


class SedTransWilcock(SedTransFractional):
    r"""
    Two-fraction sand and gravel transport capacity of Wilcock.

    For a shear stress :math:`\tau` above the critical value of each fraction:

    .. math::

        Q_s = \frac{0.058}{\rho_s} f W p \, \tau^{1.5} \left( 1 - \sqrt{\tau_{cs}/\tau} \right)^{4.5}

        Q_g = \frac{0.058}{\rho_s} f W (1-p) \, \tau^{1.5} \left( 1 - \tau_{cg}/\tau \right)^{4.5}

    (in m3/s, converted to m3/yr). For the whole node, :math:`f` is the ratio between the surface layer thickness and the maximum regolith depth and the shear stress is computed from the hydraulic roughness and width. For the weighted form, :math:`f` is the caller weight and the shear stress uses a constant roughness of 0.03.

    A negative slope gives a null capacity.
    """

    def transCapacity(self, mesh, nid):

        slp = mesh.getSlope(nid)
        self._resetNode(mesh, nid)
        if slp < 0.0:
            return 0.0

        persand = self._layerSand(mesh, nid, 0)
        if mesh.maxregdep > 0.0:
            factor = mesh.getLayerDepth(nid, 0) / mesh.maxregdep
        else:
            factor = 1.0

        width = mesh.hydrWidth[nid]
        if width > 0.0:
            qterm = mesh.hydrRough[nid] * mesh.discharge[nid] * YEARPERSEC / width
        else:
            qterm = 0.0
        tau = self.taudim * qterm ** 0.6 * slp ** 0.7
        mesh.tau[nid] = tau

        taucs, taucg = self.critShear(persand)
        if tau > taucs:
            mesh.QsM[nid, 0] = (
                (0.058 / RHOSED)
                * factor
                * width
                * SECPERYEAR
                * persand
                * tau ** 1.5
                * (1.0 - np.sqrt(taucs / tau)) ** 4.5
            )
        if tau > taucg:
            mesh.QsM[nid, 1] = (
                (0.058 * SECPERYEAR * factor * width / RHOSED)
                * (1.0 - persand)
                * tau ** 1.5
                * (1.0 - taucg / tau) ** 4.5
            )
        mesh.Qs[nid] = mesh.QsM[nid].sum()

        return mesh.Qs[nid]

    def transCapacityWeighted(self, mesh, nid, lyr, weight):

        persand = self._layerSand(mesh, nid, lyr)
        slp = mesh.getSlope(nid)
        if slp < 0.0:
            self._resetNode(mesh, nid)
            return 0.0

        tau = self._shearWeighted(mesh, nid, slp)
        mesh.tau[nid] = tau
        width = mesh.hydrWidth[nid]

        taucs, taucg = self.critShear(persand)
        qss = 0.0
        qsg = 0.0
        if tau > taucs:
            qss = (
                (0.058 / RHOSED)
                * weight
                * width
                * SECPERYEAR
                * persand
                * tau ** 1.5
                * (1.0 - np.sqrt(taucs / tau)) ** 4.5
            )
            mesh.QsM[nid, 0] += qss
        if mesh.numg == 2 and tau > taucg:
            qsg = (
                (0.058 * SECPERYEAR * weight * width / RHOSED)
                * (1.0 - persand)
                * tau ** 1.5
                * (1.0 - taucg / tau) ** 4.5
            )
            mesh.QsM[nid, 1] += qsg
        mesh.Qs[nid] = mesh.QsM[nid].sum()

        return qss + qsg


class SedTransMineTailings(SedTransFractional):
    r"""
    Empirical transport capacity derived on mine tailings slopes (Willgoose and Riley, 1998) combined with the Wilcock critical shear stresses:

    .. math::

        Q_s = \frac{0.0541}{\rho_s} \, w \, p \, Q^{1.12} S^{-0.24} \left( \tau - \tau_{cs} \right)

    and similarly for the gravel fraction with :math:`(1-p)`. Discharge is in m3/s and the result is converted to m3/yr. The whole node form uses the surface layer with no weighting.

    A negative slope gives a null capacity.
    """

    def _fractionCap(self, mesh, nid, slp, tau, tauc, prop, weight):
        if tau <= tauc:
            return 0.0

        return (
            (0.0541 / RHOSED)
            * weight
            * SECPERYEAR
            * prop
            * (mesh.discharge[nid] / SECPERYEAR) ** 1.12
            * slp ** (-0.24)
            * (tau - tauc)
        )

    def transCapacity(self, mesh, nid):

        slp = mesh.getSlope(nid)
        self._resetNode(mesh, nid)
        if slp < 0.0:
            return 0.0

        persand = self._layerSand(mesh, nid, 0)
        tau = self._shearWeighted(mesh, nid, slp)
        mesh.tau[nid] = tau

        taucs, taucg = self.critShear(persand)
        mesh.QsM[nid, 0] = self._fractionCap(mesh, nid, slp, tau, taucs, persand, 1.0)
        mesh.QsM[nid, 1] = self._fractionCap(
            mesh, nid, slp, tau, taucg, 1.0 - persand, 1.0
        )
        mesh.Qs[nid] = mesh.QsM[nid].sum()

        return mesh.Qs[nid]

    def transCapacityWeighted(self, mesh, nid, lyr, weight):

        persand = self._layerSand(mesh, nid, lyr)
        slp = mesh.getSlope(nid)
        if slp < 0.0:
            self._resetNode(mesh, nid)
            return 0.0

        tau = self._shearWeighted(mesh, nid, slp)
        mesh.tau[nid] = tau

        taucs, taucg = self.critShear(persand)
        qss = self._fractionCap(mesh, nid, slp, tau, taucs, persand, weight)
        mesh.QsM[nid, 0] += qss
        qsg = 0.0
        if mesh.numg == 2:
            qsg = self._fractionCap(mesh, nid, slp, tau, taucg, 1.0 - persand, weight)
            mesh.QsM[nid, 1] += qsg
        mesh.Qs[nid] = mesh.QsM[nid].sum()

        return qss + qsg
