import pandas as pd


class EquilibCheck(object):
    """
    Tracks the evolution of the domain mean elevation to assess whether a landscape has reached a dynamic equilibrium.

    Each sample records the simulation time and the Voronoi area weighted mean elevation of the active nodes. Two rates of change are available:

    - the short term rate between the two latest samples,
    - the long term rate over a window of length `longTime`, measured from the earliest sample whose time falls inside the window.

    :arg mesh: `UnstMesh` object
    :arg longTime: length of the long term averaging window
    :arg verbose: output flag
    """

    def __init__(self, mesh, longTime=0.0, verbose=False):

        if mesh is None:
            raise ValueError("EquilibCheck requires a valid mesh.")

        self.mesh = mesh
        self.verbose = verbose
        self.longTime = 0.0
        self.setLongTime(longTime)
        self.history = []
        self.shortRate = 0.0
        self.longRate = 0.0

        return

    def setLongTime(self, longTime):
        """
        Sets the long term window, negative values are set to 0.
        """

        self.longTime = max(0.0, longTime)

        return

    def getLongTime(self):
        return self.longTime

    def getShortRate(self):
        return self.shortRate

    @property
    def massList(self):
        """
        Recorded samples as a pandas DataFrame with `time` and `elev` columns.
        """

        return pd.DataFrame(self.history, columns=["time", "elev"])

    def findIterChngRate(self, time):
        """
        Records a new sample and computes the rate of change since the previous one.

        On the first call the rate is the mean elevation divided by the time (0 when time is 0).

        :arg time: current simulation time

        :return: short term rate of elevation change
        """

        mean = self.mesh.meanElevation()
        if len(self.history) > 0:
            lastTime, lastMean = self.history[-1]
            dt = time - lastTime
            if dt <= 0.0:
                raise ValueError(
                    "Equilibrium samples need increasing times: got {} after {}.".format(
                        time, lastTime
                    )
                )
            self.shortRate = (mean - lastMean) / dt
        elif time > 0.0:
            self.shortRate = mean / time
        else:
            self.shortRate = 0.0

        self.history.append((time, mean))

        return self.shortRate

    def findLongTermChngRate(self, time, longTime=None):
        """
        Records a new sample and computes the long term rate of change.

        :arg time: current simulation time
        :arg longTime: optional new window length

        :return: long term rate of elevation change
        """

        if longTime is not None:
            self.setLongTime(longTime)
        self.findIterChngRate(time)
        self.longRate = self.getLongRate()

        if self.verbose:
            print(
                "Mean elevation change rates: short term {:.4e}, long term {:.4e}".format(
                    self.shortRate, self.longRate
                ),
                flush=True,
            )

        return self.longRate

    def getLongRate(self, longTime=None):
        """
        Long term rate of change computed from the recorded samples, without adding a new one.

        :arg longTime: window length (defaults to the current one)

        :return: long term rate of elevation change
        """

        if longTime is None:
            longTime = self.longTime
        longTime = max(0.0, longTime)

        if longTime == 0.0 or len(self.history) < 2:
            return self.shortRate

        lastTime, lastMean = self.history[-1]
        target = lastTime - longTime
        k = 0
        while self.history[k][0] < target:
            k += 1
        if k == len(self.history) - 1:
            k -= 1

        refTime, refMean = self.history[k]

        return (lastMean - refMean) / (lastTime - refTime)
