"""Progressive Monte Carlo path tracer.

This package renders scenes of spheres, triangles, quads and planes with
unbiased path tracing, spread over a pool of worker threads:
- Path tracing with next-event estimation and multiple importance sampling
- Diffuse, mirror and mixed materials with emission
- Area and point lights chosen by power
- Progressive tile-based accumulation with cancel-on-move sessions

Subpackages:
    core: Rays, vector utilities, integrator, scheduler and sessions
    geometry: Shape primitives and intersection algorithms
    materials: BRDF material models
    scene: Scene building, lights and presets
    camera: Camera snapshots with ray generation
    preview: Tone mapping, image export and the interactive viewer
"""

__version__ = "0.1.0"
