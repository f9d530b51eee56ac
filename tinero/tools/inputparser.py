import numpy as np
import pandas as pd

from ruamel.yaml import YAML


def readItem(input, section, key, default=None, required=False):
    """
    Reads a single parameter from a parsed YAML input.

    This is the access point used by the capacity laws and the stream network to pick their own coefficients in the input file.

    :arg input: parsed YAML mapping
    :arg section: name of the section (e.g. `detachment`)
    :arg key: name of the parameter within the section
    :arg default: value returned when an optional parameter is not declared
    :arg required: if True a missing section or key is an error

    :return: the parameter value
    """

    try:
        secDict = input[section]
        if secDict is None:
            raise KeyError(section)
        return secDict[key]
    except KeyError:
        if required:
            print(
                "Key '{}' is required and is missing in the '{}' declaration!".format(
                    key, section
                ),
                flush=True,
            )
            raise KeyError(
                "Parameter {} needs to be declared in section {}.".format(key, section)
            )

    return default


class ReadYaml(object):
    """
    Class for reading simulation input file and initialising model parameters.

    The input file is a YAML file with the following sections: `name`, `domain`, `time`, `erosion`, `detachment`, `transport`, `grains`, `hydraulics`, `diffusion`, `uplift`, `adapt` and `equilibrium`. Only `domain` and `time` are mandatory.
    """

    def __init__(self, filename):
        """
        Parsing YAML file.

        :arg filename: input filename (.yml YAML file)
        """

        # Check input file exists
        self.finput = filename
        try:
            with open(filename) as finput:
                pass
        except IOError:
            print("Unable to open file: ", filename, flush=True)
            raise IOError("The input file is not found...")

        # Open YAML file
        with open(filename, "r") as finput:
            yaml = YAML(typ="rt")
            self.input = yaml.load(finput)

        if "name" in self.input.keys() and self.verbose:
            print(
                "The following model will be run:     {}".format(self.input["name"]),
                flush=True,
            )

        # Read simulation parameters
        self._readDomain()
        self._readTime()
        self._readErosion()
        self._readHillslope()
        self._readUplift()
        self._readAdapt()
        self._readEquilibrium()

        self.tNow = self.tStart

        return

    def _readDomain(self):
        """
        Read domain definition, grain sizes and initial stratigraphy parameters.
        """

        try:
            domainDict = self.input["domain"]
        except KeyError:
            print(
                "Key 'domain' is required and is missing in the input file!", flush=True
            )
            raise KeyError("Key domain is required in the input file!")

        try:
            meshInfo = domainDict["npdata"]
        except KeyError:
            print(
                "Key 'npdata' is required and is missing in the 'domain' declaration!",
                flush=True,
            )
            raise KeyError("Compressed numpy dataset definition is not defined!")

        self.meshFile = meshInfo + ".npz"
        try:
            with open(self.meshFile) as meshfile:
                meshfile.close()

        except IOError:
            print("Unable to open numpy dataset: {}".format(self.meshFile), flush=True)
            raise IOError("The numpy dataset is not found...")

        try:
            self.numg = domainDict["numgrn"]
        except KeyError:
            self.numg = 1

        try:
            self.maxregdep = domainDict["maxregdep"]
        except KeyError:
            self.maxregdep = 1.0

        try:
            self.regdep = domainDict["regdep"]
        except KeyError:
            self.regdep = 0.0

        try:
            self.erody = domainDict["erody"]
        except KeyError:
            self.erody = 1.0e-4

        try:
            self.erodySed = domainDict["erodysed"]
        except KeyError:
            self.erodySed = self.erody

        try:
            self.brgrade = np.array(domainDict["brgrade"], dtype=np.float64)
        except KeyError:
            self.brgrade = np.full(self.numg, 1.0 / self.numg)

        if len(self.brgrade) != self.numg:
            print(
                "Bedrock grading 'brgrade' needs one value per grain size.", flush=True
            )
            raise ValueError("Bedrock grading does not match the number of grain sizes.")
        if abs(self.brgrade.sum() - 1.0) > 1.0e-6:
            raise ValueError("Bedrock grading fractions need to sum to 1.")

        return

    def _readTime(self):
        """
        Read simulation time declaration.
        """

        try:
            timeDict = self.input["time"]
        except KeyError:
            print(
                "Key 'time' is required and is missing in the input file!", flush=True
            )
            raise KeyError("Key time is required in the input file!")

        try:
            self.tStart = timeDict["start"]
        except KeyError:
            print(
                "Key 'start' is required and is missing in the 'time' declaration!",
                flush=True,
            )
            raise KeyError("Simulation start time needs to be declared.")

        try:
            self.tEnd = timeDict["end"]
        except KeyError:
            print(
                "Key 'end' is required and is missing in the 'time' declaration!",
                flush=True,
            )
            raise KeyError("Simulation end time needs to be declared.")

        if self.tEnd <= self.tStart:
            raise ValueError("Simulation end/start times do not make any sense!")

        try:
            self.dt = timeDict["dt"]
        except KeyError:
            print(
                "Key 'dt' is required and is missing in the 'time' declaration!",
                flush=True,
            )
            raise KeyError("Simulation discretisation time step needs to be declared.")

        if self.dt <= 0.0:
            raise ValueError("Simulation time step needs to be positive.")

        return

    def _readErosion(self):
        """
        Read the choice of erosion integrator.
        """

        try:
            eroDict = self.input["erosion"]
            try:
                self.eroMethod = eroDict["method"]
            except KeyError:
                self.eroMethod = "detachlim"
        except KeyError:
            self.eroMethod = "detachlim"

        methods = ["detachlim", "detachlimuplift", "stream", "streammulti", "detacherode"]
        if self.eroMethod not in methods:
            print(
                "Erosion method '{}' is unknown, use one of {}.".format(
                    self.eroMethod, methods
                ),
                flush=True,
            )
            raise ValueError("Erosion method is not recognised.")

        return

    def _readHillslope(self):
        """
        Read hillslope parameters.
        """

        try:
            hillDict = self.input["diffusion"]
            try:
                self.kd = hillDict["kd"]
            except KeyError:
                print(
                    "When declaring diffusion processes, the coefficient kd is required.",
                    flush=True,
                )
                raise ValueError("Hillslope: kd coefficient not found.")
            try:
                self.noDepo = hillDict["nodepo"]
            except KeyError:
                self.noDepo = False
        except KeyError:
            self.kd = 0.0
            self.noDepo = False

        return

    def _readUplift(self):
        """
        Read uplift forcing: either a uniform rate or a CSV file giving the rate through time.
        """

        self.upliftRate = 0.0
        self.upliftCurve = None
        try:
            upDict = self.input["uplift"]
        except KeyError:
            return

        try:
            self.upliftRate = upDict["rate"]
        except KeyError:
            self.upliftRate = 0.0

        try:
            curveFile = upDict["curve"]
            try:
                with open(curveFile) as cfile:
                    cfile.close()
            except IOError:
                print("Unable to open uplift file: {}".format(curveFile), flush=True)
                raise IOError("The uplift curve file is not found...")
            self.upliftCurve = pd.read_csv(
                curveFile,
                sep=r",|\s+",
                engine="python",
                header=None,
                names=["time", "rate"],
            )
        except KeyError:
            self.upliftCurve = None

        return

    def _readAdapt(self):
        """
        Read mesh densification threshold.
        """

        try:
            adaptDict = self.input["adapt"]
            try:
                self.maxflux = adaptDict["maxflux"]
            except KeyError:
                print(
                    "When declaring mesh adaptation, the flux threshold maxflux is required.",
                    flush=True,
                )
                raise ValueError("Mesh adaptation: maxflux not found.")
        except KeyError:
            self.maxflux = None

        return

    def _readEquilibrium(self):
        """
        Read the averaging window used for the long-term rate of elevation change.
        """

        try:
            eqDict = self.input["equilibrium"]
            try:
                self.longTime = eqDict["longtime"]
            except KeyError:
                self.longTime = 0.0
        except KeyError:
            self.longTime = 0.0

        return
