import numpy as np
import numpy_indexed as npi

from time import process_time

from ..tools.inputparser import readItem


class hillSLP(object):
    """
    This class encapsulates the linear hillslope diffusion (soil creep) process computed explicitly over the mesh edges.
    """

    def __init__(self, input=None, *args, **kwargs):
        """
        The initialisation of `hillSLP` class reads the diffusion coefficient and the no-deposition option.
        """

        if input is None:
            input = {}
        self.kd = readItem(input, "diffusion", "kd", 0.0)
        self.noDepo = readItem(input, "diffusion", "nodepo", False)

        self._diffStep = None
        self._diffVersion = None

        return

    def _diffusionStep(self):
        """
        Maximum stable time step for explicit diffusion, recomputed only when the mesh changes.

        For each edge with a non negligible :math:`\\kappa_D L_v`, the step is limited to :math:`0.1 L / (\\kappa_D L_v)` where :math:`L` is the edge length and :math:`L_v` the length of the associated Voronoi face.
        """

        mesh = self.mesh
        if self._diffStep is not None and self._diffVersion == mesh.meshVersion:
            return self._diffStep

        denom = self.kd * mesh.vEdgeLen[0::2]
        ids = denom > 1.0e-6
        if np.any(ids):
            self._diffStep = (0.1 * mesh.edgeLen[0::2][ids] / denom[ids]).min()
        else:
            self._diffStep = np.inf
        self._diffVersion = mesh.meshVersion

        return self._diffStep

    def diffuse(self, rt, noDepoFlag=None, time=0.0):
        r"""
        This function computes hillslope using a **linear** diffusion law commonly referred to as **soil creep**:

        .. math::
          \frac{\partial z}{\partial t}= \kappa_{D} \nabla^2 z

        The volume exchanged along an edge over a time step :math:`\Delta t` is :math:`\kappa_D S L_v \Delta t` with :math:`S` the edge slope and :math:`L_v` the length of the Voronoi face crossed by the edge. Each pair of complementary edges is visited once. Net volumes are gathered on each node and converted into elevation changes through the node stratigraphic column.

        .. note::
            With the no-deposition option, nodes receiving a net positive volume are left unchanged, the material being assumed removed by rivers.

        :arg rt: duration of the diffusion process
        :arg noDepoFlag: no-deposition option (defaults to the input file value)
        :arg time: current time used to date the stratigraphic layers
        """

        mesh = self.mesh
        if self.kd <= 0.0 or len(mesh.edgeOrig) == 0 or rt <= 0.0:
            return
        if noDepoFlag is None:
            noDepoFlag = self.noDepo

        t0 = process_time()
        orig = mesh.edgeOrig[0::2]
        dest = mesh.edgeDest[0::2]
        edgeLen = mesh.edgeLen[0::2]
        vEdgeLen = mesh.vEdgeLen[0::2]
        nodes = np.concatenate((orig, dest))
        active = mesh.activeIDs
        groups = npi.group_by(nodes)

        dtmax = min(rt, self._diffusionStep())
        nsteps = 0
        while rt > 0.0:
            slope = (mesh.elev[orig] - mesh.elev[dest]) / edgeLen
            volout = self.kd * slope * vEdgeLen * dtmax

            mesh.Qsin.fill(0.0)
            ids, vol = groups.sum(np.concatenate((-volout, volout)))
            mesh.Qsin[ids] = vol
            if noDepoFlag:
                mesh.Qsin[mesh.Qsin > 0.0] = 0.0

            dh = mesh.Qsin / mesh.vArea
            for nid in active[dh[active] != 0.0]:
                mesh.eroDepTotal(nid, dh[nid], time)

            rt -= dtmax
            time += dtmax
            nsteps += 1
            if dtmax > rt:
                dtmax = rt

        if self.verbose:
            print(
                "Compute Linear Hillslope Processes in {} steps (%0.02f seconds)".format(
                    nsteps
                )
                % (process_time() - t0),
                flush=True,
            )

        return
