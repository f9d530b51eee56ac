from ..tools.inputparser import readItem

from .detachment import BedErodePwrLaw
from .detachment import BedErodePwrLawMulti
from .transport import SedTransPwrLaw
from .transport import SedTransPwrLawMulti
from .transport import SedTransWilcock
from .transport import SedTransMineTailings

detachmentLaws = {
    "powerlaw": BedErodePwrLaw,
    "powerlawmulti": BedErodePwrLawMulti,
}

transportLaws = {
    "powerlaw": SedTransPwrLaw,
    "powerlawmulti": SedTransPwrLawMulti,
    "wilcock": SedTransWilcock,
    "minetailings": SedTransMineTailings,
}


def _buildLaw(input, key, laws):

    name = readItem(input, "erosion", key, "powerlaw")
    try:
        law = laws[name]
    except KeyError:
        print(
            "Unknown {} law '{}', available laws are: {}.".format(
                key, name, ", ".join(laws.keys())
            ),
            flush=True,
        )
        raise ValueError("The {} law {} is not defined.".format(key, name))

    return law(input)


def buildBedErode(input):
    """
    Builds the bedrock detachment law declared with the `detachment` key of the `erosion` section (`powerlaw` by default).

    :arg input: parsed YAML mapping

    :return: detachment law object
    """

    return _buildLaw(input, "detachment", detachmentLaws)


def buildSedTrans(input):
    """
    Builds the sediment transport law declared with the `transport` key of the `erosion` section (`powerlaw` by default).

    :arg input: parsed YAML mapping

    :return: transport law object
    """

    return _buildLaw(input, "transport", transportLaws)
