import numpy as np

from scipy.interpolate import interp1d


class Uplift(object):
    """
    Tectonic source term applied to the interior nodes of the mesh.

    The uplift rate is either uniform in time (a scalar or one value per node) or follows a time curve provided as a table of `time` and `rate` columns. In the latter case, the rate at the current time is linearly interpolated and held constant outside the table bounds.

    :arg mesh: `UnstMesh` object
    :arg rate: uniform uplift rate (m/yr), scalar or one value per node
    :arg curve: optional pandas DataFrame with `time` and `rate` columns
    :arg time: initial time
    """

    def __init__(self, mesh, rate=0.0, curve=None, time=0.0):

        if mesh is None:
            raise ValueError("Uplift requires a valid mesh.")

        self.mesh = mesh
        self.rate = rate
        self.time = time
        self.curveFunc = None
        if curve is not None:
            curve = curve.sort_values(by=["time"])
            self.curveFunc = interp1d(
                curve["time"].values,
                curve["rate"].values,
                kind="linear",
                bounds_error=False,
                fill_value=(curve["rate"].values[0], curve["rate"].values[-1]),
            )

        return

    def setTime(self, time):
        self.time = time

        return

    def getRate(self, nid=None):
        """
        Uplift rate at the current time.

        :arg nid: node index (only used when the rate varies spatially)

        :return: rate in m/yr
        """

        if self.curveFunc is not None:
            return float(self.curveFunc(self.time))

        if np.isscalar(self.rate):
            return self.rate
        if nid is None:
            return self.rate

        return self.rate[nid]

    def uplift(self, dt):
        """
        Raises the interior nodes over the time interval `dt`.
        """

        ids = self.mesh.activeIDs
        if self.curveFunc is not None or np.isscalar(self.rate):
            rate = self.getRate()
            if rate == 0.0:
                return
            self.mesh.elev[ids] += rate * dt
        else:
            self.mesh.elev[ids] += np.asarray(self.rate)[ids] * dt

        return
