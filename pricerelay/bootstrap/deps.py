import json
from functools import lru_cache

from pydantic import ValidationError

from pricerelay.bootstrap.config.loader import get_configfile
from pricerelay.bootstrap.config.settings import RelaySettings
from pricerelay.core.controlplane import ControlPlane
from pricerelay.infra.orjson_serializer import OrjsonSerializer


@lru_cache
def get_cp() -> ControlPlane:
    return ControlPlane(
        config=get_config(),
        serializer=OrjsonSerializer(),
    )


@lru_cache
def get_config() -> RelaySettings:
    configfile = get_configfile()
    try:
        if configfile is None:
            return RelaySettings()
        return RelaySettings.from_yaml(configfile)
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))
