"""
Bedrock detachment and sediment transport capacity laws, erosion integrators and dynamic equilibrium tracking.
"""
from .detachment import BedErodePwrLaw
from .detachment import BedErodePwrLawMulti
from .transport import SedTransPwrLaw
from .transport import SedTransPwrLawMulti
from .transport import SedTransWilcock
from .transport import SedTransMineTailings
from .lawfactory import buildBedErode
from .lawfactory import buildSedTrans
from .equilibrium import EquilibCheck
from .erosion import Erosion
