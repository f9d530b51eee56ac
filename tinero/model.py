from time import process_time

from .tools import ReadYaml as _ReadYaml
from .tools import Uplift as _Uplift
from .mesher import UnstMesh as _UnstMesh
from .flow import StreamNet as _StreamNet
from .eroder import Erosion as _Erosion
from .eroder import EquilibCheck as _EquilibCheck


class Model(_ReadYaml):
    """
    Instantiates model's objects and initialise classes.

    This object contains methods for the following operations:

     - initialisation of the mesh and stratigraphic columns based on input file options
     - computation of river erosion, sediment transport and hillslope processes over time
     - tracking of the mean elevation to assess dynamic equilibrium

    :arg filename: YAML input file
    :arg verbose: output flag for model main functions
    :arg refiner: optional callable used by the mesh to insert nodes around a node
    """

    def __init__(self, filename, verbose=True, refiner=None, *args, **kwargs):

        self.modelRunTime = process_time()
        self.verbose = verbose

        # Read input dataset
        _ReadYaml.__init__(self, filename)

        # Define unstructured mesh and stratigraphic columns
        self.mesh = _UnstMesh.fromFile(
            self.meshFile,
            numg=self.numg,
            maxregdep=self.maxregdep,
            regdep=self.regdep,
            erody=self.erody,
            erodySed=self.erodySed,
            brgrade=self.brgrade,
            refiner=refiner,
            verbose=self.verbose,
        )

        # Hydraulics and flow network
        self.strmNet = _StreamNet(self.mesh, self.input, verbose=self.verbose)
        self.strmNet.sortNodesByNetOrder()
        self.strmNet.flowAccumulation()

        # Tectonic forcing
        self.uplift = _Uplift(
            self.mesh, self.upliftRate, self.upliftCurve, time=self.tStart
        )

        # Erosion laws and integrators
        self.erosion = _Erosion(self.mesh, self.input, verbose=self.verbose)

        # Dynamic equilibrium tracking
        self.eqCheck = _EquilibCheck(self.mesh, self.longTime, verbose=self.verbose)

        if self.verbose:
            print(
                "--- Initialisation Phase (%0.02f seconds)"
                % (process_time() - self.modelRunTime),
                flush=True,
            )

        return

    def _erode(self, dt):
        """
        Calls the erosion integrator selected in the input file.
        """

        if self.eroMethod == "detachlim":
            self.erosion.erodeDetachLim(dt, self.strmNet, self.tNow)
        elif self.eroMethod == "detachlimuplift":
            self.erosion.erodeDetachLimUplift(dt, self.strmNet, self.uplift, self.tNow)
        elif self.eroMethod == "stream":
            self.erosion.streamErode(dt, self.strmNet, self.tNow)
        elif self.eroMethod == "streammulti":
            self.erosion.streamErodeMulti(dt, self.strmNet, self.tNow)
        else:
            self.erosion.detachErode(dt, self.strmNet, self.tNow)

        return

    def runProcesses(self):
        """
        Runs simulation over time.

        This function contains methods for the following operations:

         - applies tectonic uplift to the interior nodes
         - computes flow ordering and accumulation based on imposed runoff
         - performs river erosion, transport and deposition with the selected integrator
         - executes hillslope diffusion and updates surface exposure times
         - requests mesh densification where sediment fluxes are too high
         - records mean elevation change rates

        """

        while self.tNow < self.tEnd:
            tstep = process_time()
            dt = min(self.dt, self.tEnd - self.tNow)

            # Tectonics
            self.uplift.setTime(self.tNow)
            self.uplift.uplift(dt)

            # Flow ordering and accumulation
            self.strmNet.sortNodesByNetOrder()
            self.strmNet.flowAccumulation()

            # River incision, transport and deposition
            self._erode(dt)

            # Hillslope diffusion
            if self.kd > 0.0:
                self.erosion.diffuse(dt, self.noDepo, self.tNow)

            self.erosion.updateExposureTime(dt)

            # Advance time
            self.tNow += dt

            if self.maxflux is not None:
                self.erosion.densifyMesh(self.tNow)

            self.eqCheck.findLongTermChngRate(self.tNow)

            if self.verbose:
                print(
                    "--- Computational Step (%0.02f seconds) | Time Step: %d years"
                    % (process_time() - tstep, self.tNow),
                    flush=True,
                )

        return
