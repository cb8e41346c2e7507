from scipy import constants

# Constants
Q_K = constants.e / constants.k  # [K/V] reciprocal of the Boltzmann constant over charge
K_Q = constants.k / constants.e
T_REF = 298.15  # [K] rated cell temperature
S_REF = 1000.0  # [W/m2] rated irradiance


def TK(TC: float) -> float:
    """
    Convert temperature from Celsius to Kelvin.

    Args:
        TC (float): Temperature in Celsius.

    Returns:
        float: Temperature in Kelvin.
    """
    return TC + constants.zero_Celsius


def Vth(TC: float) -> float:
    """
    Calculate the thermal voltage.

    Args:
        TC (float): Temperature in Celsius.

    Returns:
        float: Thermal voltage.
    """
    return K_Q * TK(TC)


def irradiance_ratio(irradiance: float, shading: float = 0.0) -> float:
    """
    Effective irradiance relative to the rated irradiance.

    Args:
        irradiance (float): Plane-of-array irradiance in [W/m2].
        shading (float): Fraction of the irradiance occluded.

    Returns:
        float: Ratio of the unshaded irradiance to S_REF.
    """
    return irradiance * (1.0 - shading) / S_REF
