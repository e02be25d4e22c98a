import hydra
from omegaconf import DictConfig
import pyrootutils

# project root setup
root = pyrootutils.setup_root(__file__, indicator="pyproject.toml", dotenv=True, pythonpath=True)


@hydra.main(version_base=None, config_path="config", config_name="run")
def main(cfg: DictConfig) -> None:

    # Instantiate the job from config
    job = hydra.utils.instantiate(cfg.job)
    print(f"✅ Job '{job.job_name}' loaded successfully!")

    # Render every expression and write the contact sheets.
    job.run()


if __name__ == "__main__":
    main()
